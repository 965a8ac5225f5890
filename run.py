"""CLI entry point: run the review panel against a commit diff file."""
from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path

from panel.config import DEFAULT_DEPTH_MODE
from panel.runner import evaluate_commit
from panel.schemas import PILLARS, CommitContext


async def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    if len(sys.argv) < 2:
        print("usage: python run.py <diff-file> [fast|normal|deep] [author]")
        sys.exit(2)

    diff_path = Path(sys.argv[1])
    depth = sys.argv[2] if len(sys.argv) > 2 else DEFAULT_DEPTH_MODE
    author = sys.argv[3] if len(sys.argv) > 3 else "unknown"

    diff = diff_path.read_text(encoding="utf-8", errors="replace")
    files = [
        line[len("+++ b/"):] for line in diff.splitlines() if line.startswith("+++ b/")
    ]
    commit = CommitContext(commit_hash=diff_path.stem, author=author, diff=diff, files_changed=files)

    print(f"\nCommit: {commit.commit_hash} ({len(files)} files)")
    print(f"Depth mode: {depth}\n")

    evaluation = await evaluate_commit(commit, depth=depth)
    consensus = evaluation.consensus

    print("\n" + "=" * 60)
    print("PANEL CONSENSUS")
    print("=" * 60)
    for pillar in PILLARS:
        value = consensus.get(pillar)
        print(f"  {pillar:<20} {'-' if value is None else value}")
    print(f"  {'commitScore':<20} {'-' if consensus.commit_score is None else consensus.commit_score}")
    print("  Agents:")
    for result in evaluation.results:
        flag = "  [FORCED STOP]" if result.forced_stop else ""
        clarity = "-" if result.clarity_score is None else f"{result.clarity_score:.0%}"
        print(f"    {result.agent:<20} iterations={result.iterations} clarity={clarity}{flag}")
    for agent in evaluation.failed_agents:
        print(f"    {agent:<20} FAILED")
    print(f"  Rounds: {len(evaluation.rounds)}{' (converged)' if evaluation.converged else ''}")
    print(f"  Tokens: {evaluation.token_usage.total_tokens} in {evaluation.token_usage.calls} calls")
    print("=" * 60)

    out_path = "evaluation.json"
    with open(out_path, "w") as f:
        json.dump(evaluation.model_dump(), f, indent=2)
    print(f"\nFull result written to {out_path}")


if __name__ == "__main__":
    asyncio.run(main())
