"""Prompt and response transcripts for inspecting what the wizard sends to the AI."""

import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO


class PromptLogger:
    """Writes a readable transcript of every AI exchange.

    Each request gets a sequence number; the matching response reuses it so
    a transcript can be read top to bottom.
    """

    def __init__(self, output: Optional[TextIO] = None, log_file: Optional[Path] = None):
        """
        Args:
            output: Stream used when no log_file is given (default: stderr)
            log_file: Append the transcript to this file instead
        """
        self.output = output or sys.stderr
        self.log_file = log_file
        self.exchange_count = 0

    def log_request(
        self,
        stage: str,
        messages: List[Dict[str, str]],
        model: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.exchange_count += 1
        lines = [
            f"#{self.exchange_count} REQUEST {stage} model={model} at={datetime.now().isoformat()}",
        ]
        if metadata:
            lines.append(f"metadata: {json.dumps(metadata, sort_keys=True, default=str)}")
        for message in messages:
            lines.append(f"--- {message.get('role', 'unknown')} ---")
            lines.append(message.get("content", ""))
        self._write(lines)

    def log_response(
        self,
        stage: str,
        content: Optional[str] = None,
        error: Optional[Exception] = None,
    ) -> None:
        lines = [f"#{self.exchange_count} RESPONSE {stage}"]
        if error is not None:
            lines.append(f"error: {type(error).__name__}: {error}")
        if content is not None:
            lines.append(content)
        self._write(lines)

    def _write(self, lines: List[str]) -> None:
        text = "\n".join(lines) + "\n\n"
        if self.log_file:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_file, "a", encoding="utf-8") as f:
                f.write(text)
        else:
            self.output.write(text)
            self.output.flush()
