# panelfs/logging.py
import json
import logging
import os
import re
from typing import Any, Dict

PII_RE = re.compile(r"([\w\.-]+)@([\w\.-]+)")  # naive email redaction

# Argument names whose values are file bodies; only their size is logged
BODY_KEYS = {"content"}


def configure_logging(level: str | None = None):
    logging.basicConfig(
        level=level or os.getenv("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def redact_str(s: str) -> str:
    return PII_RE.sub("[redacted-email]", s)


def redact_args(args: Dict[str, Any]) -> Dict[str, Any]:
    safe = json.loads(json.dumps(args, default=str))  # shallow copy via JSON
    for k, v in list(safe.items()):
        if k in BODY_KEYS and isinstance(v, str):
            safe[k] = f"<{len(v)} chars>"
        elif isinstance(v, str):
            safe[k] = redact_str(v)
    return safe


def log_call(logger: logging.Logger, name: str, args: Dict[str, Any]):
    logger.info("call %s %s", name, redact_args(args))
