"""
Script to report dependency cycles in a project from the command line.

Exits with status 1 when at least one cycle is found, so it can gate CI or
cron-driven cleanup jobs.
"""

import argparse
import asyncio
import json
import sys
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from taskdeps.core.config import get_settings
from taskdeps.core.database import get_session_context
from taskdeps.main import configure_logging
from taskdeps.services.cycles import audit_project_cycles
from taskdeps_shared.schemas.dependencies import CycleReport


def format_report(reports: list[CycleReport]) -> str:
    if not reports:
        return "No dependency cycles found."
    lines = [f"Found {len(reports)} dependency cycle(s):"]
    for i, report in enumerate(reports, start=1):
        chain = " -> ".join(node.title for node in report.path)
        lines.append(f"  {i}. {chain} (length {report.length})")
    return "\n".join(lines)


async def run_audit(session: AsyncSession, project_id: uuid.UUID, as_json: bool = False) -> int:
    reports = await audit_project_cycles(session, project_id)
    if as_json:
        print(json.dumps([r.model_dump(mode="json") for r in reports], indent=2))
    else:
        print(format_report(reports))
    return 1 if reports else 0


async def main(project_id: uuid.UUID, as_json: bool) -> int:
    async with get_session_context() as session:
        return await run_audit(session, project_id, as_json)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Report dependency cycles in a project.")
    parser.add_argument("project_id", type=uuid.UUID, help="Project to audit")
    parser.add_argument("--json", action="store_true", help="Emit the report as JSON")

    args = parser.parse_args()

    settings = get_settings()
    configure_logging(settings.log_level, "console", stream=sys.stderr)
    sys.exit(asyncio.run(main(args.project_id, args.json)))
