"""Append-only JSONL record of plugin invocations, with secrets redacted."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from pkgplugin.redaction import redact, redact_arguments

AUDIT_DIR = ".pkgplugin"
AUDIT_FILE = "audit.jsonl"


@dataclass
class AuditEvent:
    """A single plugin invocation outcome."""

    verb: str
    status: str
    plugin: str = ""
    detail: str = ""
    arguments: list[str] = field(default_factory=list)
    writable_directories: list[str] = field(default_factory=list)


def write_audit(package_root: Path | str, event: AuditEvent) -> Path:
    """Append an audit event to the package's audit log.

    ``detail`` and ``arguments`` are redacted before writing, and a UTC
    ISO-8601 timestamp is added.

    Args:
        package_root: Root of the package the plugin ran against.
        event: The event to record.

    Returns:
        Path to the audit log file.
    """
    audit_dir = Path(package_root).resolve() / AUDIT_DIR
    audit_dir.mkdir(parents=True, exist_ok=True)
    audit_path = audit_dir / AUDIT_FILE

    record = asdict(event)
    record["detail"] = redact(record["detail"])
    record["arguments"] = redact_arguments(record["arguments"])
    record["timestamp"] = datetime.now(UTC).isoformat()

    with audit_path.open("a", encoding="utf-8") as fh:
        fh.write(json.dumps(record, ensure_ascii=False) + "\n")

    return audit_path


def read_audit(package_root: Path | str, last_n: int = 20) -> list[dict]:
    """Return the most recent *last_n* audit entries, newest first."""
    audit_path = Path(package_root).resolve() / AUDIT_DIR / AUDIT_FILE
    if not audit_path.exists():
        return []

    lines = audit_path.read_text(encoding="utf-8").strip().splitlines()
    entries = [json.loads(line) for line in lines if line.strip()]
    return list(reversed(entries[-last_n:]))
