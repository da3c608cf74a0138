from __future__ import annotations
from pathlib import Path
from typing import Any, Dict
import json

from hdmap.validation import ValidationReport


def md_kv(title: str, kv: Dict[str, Any]) -> str:
    lines = [f"# {title}", ""]
    for k, v in kv.items():
        if isinstance(v, (dict, list)):
            vv = json.dumps(v, ensure_ascii=False, indent=2)
            lines.append(f"## {k}\n```json\n{vv}\n```")
        else:
            lines.append(f"- {k}: {v}")
    lines.append("")
    return "\n".join(lines)


def write_run_card(path: Path, kv: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(md_kv("RunCard", kv), encoding="utf-8")


def validation_md(report: ValidationReport) -> str:
    lines = ["# Map Validation", ""]
    for k, v in report.stats.items():
        lines.append(f"- {k}: {v}")
    lines.extend(["", "## Issues"])
    if not report.issues:
        lines.append("- none")
    for issue in report.issues:
        lines.append(f"- [{issue.severity}] {issue.category} {issue.element_id}: {issue.message}")
    lines.append("")
    return "\n".join(lines)


def write_validation_report(path: Path, report: ValidationReport) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(validation_md(report), encoding="utf-8")


__all__ = ["md_kv", "validation_md", "write_run_card", "write_validation_report"]
