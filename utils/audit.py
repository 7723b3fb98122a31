import json
from flask import current_app, has_request_context

from models import db
from models.audit_log import AuditLog
from security.client import client_ip, client_user_agent


def log_event(action: str, user_id=None, entity=None, entity_id=None, metadata=None, commit=True):
    """Append a row to audit_logs. commit=False lets the caller commit it with its own changes."""
    in_request = has_request_context()
    row = AuditLog(
        user_id=user_id,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        ip=client_ip() if in_request else None,
        user_agent=(client_user_agent() or None) if in_request else None,
        metadata_json=json.dumps(metadata, default=str) if metadata else None,
    )
    db.session.add(row)
    if commit:
        db.session.commit()

    current_app.logger.debug("audit %s user=%s %s=%s", action, user_id, entity, entity_id)
    return row
