from __future__ import annotations

from dataclasses import dataclass

from panel.roles.business_analyst import BUSINESS_ANALYST
from panel.roles.developer_author import DEVELOPER_AUTHOR
from panel.roles.developer_reviewer import DEVELOPER_REVIEWER
from panel.roles.sdet import SDET
from panel.roles.senior_architect import SENIOR_ARCHITECT


@dataclass(frozen=True)
class Role:
    key: str            # matches the weight table
    name: str
    system_prompt: str


ALL_ROLES: list[Role] = [
    Role("business-analyst", "Business Analyst", BUSINESS_ANALYST),
    Role("sdet", "SDET (Test Automation Engineer)", SDET),
    Role("developer-author", "Developer (Author)", DEVELOPER_AUTHOR),
    Role("senior-architect", "Senior Architect", SENIOR_ARCHITECT),
    Role("developer-reviewer", "Developer (Reviewer)", DEVELOPER_REVIEWER),
]

ROLES_BY_KEY: dict[str, Role] = {role.key: role for role in ALL_ROLES}
