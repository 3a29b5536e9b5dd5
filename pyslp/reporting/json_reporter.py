"""JSON output for the pyslp command line tool.

Every invocation prints one object in the standard shape::

    {
        "success": bool,
        "command": "findsrvs",
        "data": { ... },
        "message": str
    }
"""

import json
import time
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from ..errors import SLPError, error_name


class JsonReporter:
    """Builds the JSON documents of one command."""

    def __init__(self, command: str):
        """Initialize the reporter.

        Args:
            command: Name of the command being reported.
        """
        self.command = command
        self._start_time = time.time()

    @property
    def duration_ms(self) -> int:
        return int((time.time() - self._start_time) * 1000)

    def _output(self, success: bool, data: Optional[dict[str, Any]], message: str) -> dict[str, Any]:
        return {
            "success": success,
            "command": self.command,
            "data": data,
            "message": message,
        }

    def success(self, data: dict[str, Any], message: str) -> dict[str, Any]:
        return self._output(True, data, message)

    def failure(self, message: str, error: Optional[SLPError] = None, **extra) -> dict[str, Any]:
        """Report a command that could not be carried out.

        Args:
            message: Human readable reason.
            error: SLP error code behind the failure, if any.
            **extra: Additional fields for ``data``.

        Returns:
            Output dictionary with ``success`` set to False.
        """
        data = dict(extra)
        if error is not None:
            data["error"] = error_name(error)
            data["error_code"] = int(error)
        return self._output(False, data or None, message)

    def discovery(
        self,
        results: list[Any],
        errors: list[SLPError],
        noun: str = "result",
    ) -> dict[str, Any]:
        """Report the outcome of a discovery request.

        The request succeeds when it delivered results or no error at all;
        agents that failed next to ones that answered are listed in
        ``errors``.

        Args:
            results: Delivered payloads (dataclasses are converted to dicts).
            errors: Error codes delivered through the callback.
            noun: Singular name of a result, used in the message.

        Returns:
            Output dictionary.
        """
        data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "count": len(results),
            "results": [asdict(r) if is_dataclass(r) else r for r in results],
            "errors": [error_name(e) for e in errors],
            "duration_ms": self.duration_ms,
        }
        success = bool(results) or not errors

        if not success:
            message = f"Request failed: {error_name(errors[0])}"
        elif len(results) == 1:
            message = f"Found 1 {noun}"
        else:
            message = f"Found {len(results)} {noun}s"
        return self._output(success, data, message)

    def registration(self, url: str, error: SLPError) -> dict[str, Any]:
        """Report the outcome of a registration-family request."""
        data = {
            "url": url,
            "error": error_name(error),
            "error_code": int(error),
            "duration_ms": self.duration_ms,
        }
        if error == SLPError.OK:
            return self._output(True, data, f"{self.command.capitalize()} of {url} succeeded")
        return self._output(False, data, f"{self.command.capitalize()} of {url} failed: {error_name(error)}")

    def save(self, output: dict[str, Any], path: Path) -> Path:
        """Save output to a JSON file.

        Args:
            output: Output dictionary.
            path: Output file path.

        Returns:
            Path to the saved file.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            json.dump(output, f, indent=2, ensure_ascii=False)

        return path

    @staticmethod
    def to_json_string(output: dict[str, Any], pretty: bool = False) -> str:
        """Convert output to a JSON string.

        Args:
            output: Output dictionary.
            pretty: If True, format with indentation.

        Returns:
            JSON string.
        """
        if pretty:
            return json.dumps(output, indent=2, ensure_ascii=False)
        return json.dumps(output, ensure_ascii=False)
