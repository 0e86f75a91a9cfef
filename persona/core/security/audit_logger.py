"""Audit logging for safety-filter and owner-control events.

Entries are appended to a JSONL file, one JSON object per line:
- Safety hits (identity redaction, commitment deferral, personal data)
- Owner commands and auto-reply mode changes
"""

import json
import logging
from typing import Dict, Any, Optional
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)


class AuditLogger:
    """Append-only audit log for persona safety events."""

    def __init__(self, audit_log_path: str = "logs/safety_audit.jsonl"):
        """Initialize audit logger.

        Args:
            audit_log_path: Path to audit log file (JSONL format)
        """
        self.audit_log_path = Path(audit_log_path)
        self.audit_log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"Audit logging enabled: {self.audit_log_path}")

    def _write_audit_entry(self, entry: Dict[str, Any]):
        """Write audit entry to log file.

        Args:
            entry: Audit entry dictionary
        """
        try:
            entry["timestamp"] = datetime.now().isoformat()
            with open(self.audit_log_path, 'a', encoding='utf-8') as f:
                f.write(json.dumps(entry, ensure_ascii=False) + '\n')
        except Exception as e:
            logger.error(f"Failed to write audit log: {e}")

    # ── Safety events ───────────────────────────────────────────────

    def log_safety_hit(
        self,
        hit_type: str,
        sender_id: str,
        user_text: str,
        response: str,
        details: Optional[Dict[str, Any]] = None
    ):
        """Log an outbound response the safety filter changed.

        Args:
            hit_type: identity_redaction, technical_redaction, personal_data or commitment_deferral
            sender_id: Chat the response was meant for
            user_text: Message that prompted the response
            response: Response before filtering
            details: Matched fragments and similar
        """
        entry = {
            "event_type": "safety_hit",
            "severity": "critical" if hit_type == "commitment_deferral" else "warning",
            "hit_type": hit_type,
            "sender_id": sender_id,
            "user_text": user_text[:200],
            "response": response[:200],
            "details": details or {}
        }
        self._write_audit_entry(entry)
        logger.warning(f"🚨 AUDIT: Safety hit - {hit_type} for {sender_id}")

    # ── Owner control ───────────────────────────────────────────────

    def log_owner_command(self, command: str, chat_id: str, result: str):
        """Log an owner command and the mode it produced."""
        entry = {
            "event_type": "owner_command",
            "severity": "info",
            "command": command[:200],
            "chat_id": chat_id,
            "result": result[:200]
        }
        self._write_audit_entry(entry)

    # ── Reading back ────────────────────────────────────────────────

    def get_recent_events(self, limit: int = 100, event_type: Optional[str] = None) -> list:
        """Get recent audit events.

        Args:
            limit: Maximum number of events to return
            event_type: Filter by event type

        Returns:
            List of audit events, oldest first
        """
        events = []
        if not self.audit_log_path.exists():
            return events
        try:
            with open(self.audit_log_path, 'r', encoding='utf-8') as f:
                for line in f:
                    try:
                        event = json.loads(line.strip())
                    except json.JSONDecodeError:
                        continue
                    if event_type and event.get("event_type") != event_type:
                        continue
                    events.append(event)
        except OSError as e:
            logger.error(f"Failed to read audit log: {e}")
            return []
        return events[-limit:]

    def get_safety_summary(self) -> Dict[str, Any]:
        """Counts of safety hits by type over the last 1000 events."""
        summary = {"total_events": 0, "safety_hits": 0, "hits_by_type": {}, "owner_commands": 0}
        for event in self.get_recent_events(limit=1000):
            summary["total_events"] += 1
            if event.get("event_type") == "safety_hit":
                summary["safety_hits"] += 1
                hit_type = event.get("hit_type", "unknown")
                summary["hits_by_type"][hit_type] = summary["hits_by_type"].get(hit_type, 0) + 1
            elif event.get("event_type") == "owner_command":
                summary["owner_commands"] += 1
        return summary
