"""Development-only introspection endpoints (registered when DEBUG_ENDPOINTS is on)."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from sqlalchemy import inspect

from .db import get_engine
from .logging_setup import LOG_BUFFER

bp = Blueprint("debug_api", __name__, url_prefix="/debug")


@bp.get("/schema")
def schema():
    insp = inspect(get_engine())
    tables = {}
    for name in sorted(insp.get_table_names()):
        tables[name] = [
            {"name": col["name"], "type": str(col["type"]), "nullable": bool(col.get("nullable", True))}
            for col in insp.get_columns(name)
        ]
    return jsonify({"ok": True, "tables": tables})


@bp.get("/logs")
def logs():
    try:
        limit = max(1, min(int(request.args.get("limit", "100")), LOG_BUFFER.maxlen or 500))
    except ValueError:
        limit = 100
    entries = list(LOG_BUFFER)[-limit:]
    return jsonify({"ok": True, "count": len(entries), "entries": entries})
