"""AI Output Logger - keeps every prompt and raw model reply for debugging."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional, List
import threading

logger = logging.getLogger(__name__)


class AIOutputLogger:
    """Singleton record of language-model interactions."""

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if not hasattr(self, 'initialized'):
            self.entries: List[Dict[str, Any]] = []
            self.session_id: Optional[str] = None
            self.start_time = datetime.now()
            self.output_path: Optional[Path] = None
            self.max_entries = 500
            self.initialized = True

    def set_session(self, session_id: str, output_dir: str = "data/logs"):
        """Start a fresh record for a session and choose where reports go."""
        self.session_id = session_id
        self.output_path = Path(output_dir) / f"{session_id}_ai_log.txt"
        self.start_time = datetime.now()
        self.entries = []
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"AI interactions for session {session_id} will be saved to: {self.output_path}")

    def _record(self, entry: Dict[str, Any]):
        entry["timestamp"] = datetime.now().isoformat()
        with self._lock:
            self.entries.append(entry)
            if len(self.entries) > self.max_entries:
                del self.entries[:len(self.entries) - self.max_entries]

    def log_intent_resolution(
        self,
        message: str,
        intent: Dict[str, Any],
        prompt: Optional[str] = None,
        raw_response: Optional[str] = None,
        fallback: bool = False,
        error: Optional[str] = None
    ):
        """Log how a command was resolved.

        Args:
            message: The user's command text
            intent: Resolved intent as a dict
            prompt: Full prompt sent to the model (None for keyword fallback)
            raw_response: Raw model reply
            fallback: True if the keyword table produced the intent
            error: Language-model failure that triggered the fallback
        """
        self._record({
            "type": "intent",
            "message": message,
            "intent": intent,
            "prompt": prompt,
            "raw_response": raw_response,
            "fallback": fallback,
            "error": error,
        })
        logger.debug(f"Logged intent resolution ({intent.get('action')}, fallback={fallback})")

    def log_response(
        self,
        action: str,
        response: Dict[str, Any],
        prompt: Optional[str] = None,
        raw_response: Optional[str] = None,
        fallback: bool = False
    ):
        """Log a composed reply."""
        self._record({
            "type": "response",
            "action": action,
            "response": response,
            "prompt": prompt,
            "raw_response": raw_response,
            "fallback": fallback,
        })
        logger.debug(f"Logged composed response for {action}")

    def generate_report(self) -> str:
        """Plain-text report of all recorded interactions."""
        report = []
        report.append("=" * 80)
        report.append("CHAT VIDEO EDITOR AI LOG")
        report.append("=" * 80)
        report.append(f"Session: {self.session_id or 'n/a'}")
        report.append(f"Started: {self.start_time.strftime('%Y-%m-%d %H:%M:%S')}")
        report.append("")

        for entry in self.entries:
            if entry["type"] == "intent":
                intent = entry.get("intent") or {}
                source = "keyword fallback" if entry.get("fallback") else "model"
                report.append(f"[Intent - {entry['timestamp']}] ({source})")
                report.append(f"  Message: {entry['message']}")
                report.append(f"  Action: {intent.get('action')}  Confidence: {intent.get('confidence')}")
                report.append(f"  Parameters: {intent.get('parameters')}")
                if entry.get("error"):
                    report.append(f"  Model error: {entry['error']}")
            else:
                report.append(f"[Response - {entry['timestamp']}] ({entry['action']})")
                report.append(f"  Message: {(entry.get('response') or {}).get('message')}")

            if entry.get("prompt"):
                report.append("\n  PROMPT SENT TO LLM:")
                report.append("  " + "-" * 38)
                for line in entry["prompt"].split('\n'):
                    report.append(f"  {line}")
                report.append("  " + "-" * 38)
            if entry.get("raw_response"):
                report.append(f"  Raw reply: {entry['raw_response']}")
            report.append("")

        fallbacks = sum(1 for e in self.entries if e.get("fallback"))
        report.append("=" * 80)
        report.append(f"Interactions: {len(self.entries)} ({fallbacks} without the model)")
        report.append(f"Report generated on {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        report.append("=" * 80)
        return "\n".join(report)

    def save_report(self) -> str:
        """Write the report and return its path."""
        if not self.output_path:
            raise ValueError("Output path not set. Call set_session() first.")

        report = self.generate_report()
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.output_path, 'w', encoding='utf-8') as f:
            f.write(report)

        logger.info(f"AI log saved to {self.output_path}")
        return str(self.output_path)

    def reset(self):
        """Reset the logger for a new session."""
        self.entries = []
        self.session_id = None
        self.start_time = datetime.now()
        self.output_path = None


# Global singleton instance
ai_logger = AIOutputLogger()
