"""
Operational logging for the relay adapters.

Each adapter (sms, slack) appends JSON lines to its own directory:
{log_dir}/smsrelay-{adapter}/events_YYYY-MM-DD.log and operations_YYYY-MM-DD.log
"""

import json
import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Any

import aiofiles


class AdapterLogger:
    """
    JSONL logger for adapter-specific events and operations.

    Write failures fall back to the standard logging module and are never
    raised into the request that triggered them.
    """

    def __init__(self, adapter_name: str, base_log_dir: Path):
        self.adapter_name = adapter_name
        self.log_dir = Path(base_log_dir) / f"smsrelay-{adapter_name}"
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self._write_lock = asyncio.Lock()

    async def _append(self, prefix: str, entry: Dict[str, Any]) -> None:
        today = datetime.now().strftime("%Y-%m-%d")
        log_file = self.log_dir / f"{prefix}_{today}.log"
        async with self._write_lock:
            async with aiofiles.open(log_file, 'a', encoding='utf-8') as f:
                await f.write(json.dumps(entry, ensure_ascii=False, default=str) + '\n')

    async def log_operation(
        self,
        operation: str,
        details: Dict[str, Any],
        level: str = "INFO"
    ) -> None:
        """
        Log an outbound operation (Slack post, SMS send, reaction).

        Args:
            operation: Name of the operation (e.g., "slack_post", "sms_sent")
            details: Operation details
            level: Log level (INFO, WARNING, ERROR)
        """
        try:
            await self._append("operations", {
                "timestamp": datetime.now().isoformat(),
                "adapter": self.adapter_name,
                "level": level,
                "operation": operation,
                "details": details,
            })
        except Exception as e:
            logging.error(f"Failed to write operation log for {self.adapter_name}: {e}")

    async def log_event(
        self,
        event_type: str,
        event_data: Dict[str, Any],
        level: str = "INFO"
    ) -> None:
        """
        Log an inbound webhook event.

        Args:
            event_type: Type of event (e.g., "webhook_received", "event_ignored")
            event_data: Event data
            level: Log level
        """
        try:
            await self._append("events", {
                "timestamp": datetime.now().isoformat(),
                "adapter": self.adapter_name,
                "level": level,
                "event_type": event_type,
                "event_data": event_data,
            })
        except Exception as e:
            logging.error(f"Failed to write event log for {self.adapter_name}: {e}")


def get_adapter_logger(adapter_name: str, base_log_dir: Path) -> AdapterLogger:
    """Get an adapter logger instance."""
    return AdapterLogger(adapter_name, base_log_dir)
