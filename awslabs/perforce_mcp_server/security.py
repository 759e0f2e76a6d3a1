# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License"). You may not use this file except in compliance
# with the License. A copy of the License is located at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# or in the 'license' file accompanying this file. This file is distributed on an 'AS IS' BASIS, WITHOUT WARRANTIES
# OR CONDITIONS OF ANY KIND, express or implied. See the License for the specific language governing permissions
# and limitations under the License.


"""Safety and policy checks applied around every tool call.

The SecurityManager owns the process-wide rate limit table and audit log. It is
constructed once by the server and passed to every tool, so tests can build an
isolated instance with their own clock and memory reader.
"""

import asyncio
import csv
import gc
import io
import json
import os
import psutil
import re
import time
from awslabs.perforce_mcp_server.consts import (
    DANGEROUS_MARKER,
    HEAP_WARNING_RATIO,
    MAX_PATTERN_LENGTH,
    AuditOutcome,
    InputKind,
)
from awslabs.perforce_mcp_server.models import (
    AuditEntry,
    AuditFilter,
    ComplianceConfig,
    MemoryStatus,
    MemoryUsage,
    RateLimitConfig,
    RateLimitStatus,
    SanitizationResult,
)
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from loguru import logger
from typing import Any, Callable, Dict, List, Optional


AUDIT_CSV_COLUMNS = [
    'timestamp',
    'tool',
    'user',
    'client',
    'operation',
    'result',
    'errorCode',
    'duration',
    'rss',
    'heapUsed',
    'heapTotal',
]

_SHELL_META = re.compile(r'[<>|;&$]')
_DRIVE_PATH = re.compile(r'^[A-Za-z]:[\\/]')
_LOOKBEHIND = re.compile(r'\(\?<[=!]')
# A group holding a quantifier that is itself quantified, e.g. (a+)+ or (x*)*y
_NESTED_QUANTIFIER = re.compile(r'\((?:[^()\\]|\\.)*[+*](?:[^()\\]|\\.)*\)(?:[+*]|\{\d)')


def read_memory_usage() -> MemoryUsage:
    """Read the memory figures of the current process.

    Python has no separate heap figure, so the private resident memory stands in
    for heap used and the virtual size for heap total.
    """
    info = psutil.Process().memory_info()
    shared = getattr(info, 'shared', 0)
    return MemoryUsage(rss=info.rss, heap_used=max(info.rss - shared, 0), heap_total=info.vms)


@dataclass
class RateLimitRecord:
    """Request count of one identifier. Times are epoch milliseconds."""

    count: int
    reset_time: int
    blocked_until: Optional[int] = None


class SecurityManager:
    """Rate limiting, memory checks, input sanitization and audit logging."""

    def __init__(
        self,
        config: Optional[ComplianceConfig] = None,
        rate_limit_config: Optional[RateLimitConfig] = None,
        clock: Callable[[], float] = time.time,
        memory_reader: Callable[[], MemoryUsage] = read_memory_usage,
    ):
        """Initialize the security manager.

        Args:
            config: Feature toggles and limits, read from the environment when omitted
            rate_limit_config: Default rate limit, read from the environment when omitted
            clock: Returns the current time in seconds since the epoch
            memory_reader: Returns the current process memory figures
        """
        self._config = config or ComplianceConfig.from_env()
        self._rate_limit_config = rate_limit_config or RateLimitConfig.from_env()
        self._clock = clock
        self._memory_reader = memory_reader
        self._rate_limit_store: Dict[str, RateLimitRecord] = {}
        self._audit_log: List[AuditEntry] = []
        self._sweep_task: Optional[asyncio.Task] = None

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    # Rate limiting

    def check_rate_limit(
        self, identifier: str, config: Optional[RateLimitConfig] = None
    ) -> RateLimitStatus:
        """Count one request for identifier and decide whether it is allowed.

        The check and the increment happen without any await in between, so
        concurrent tool calls never observe a half-updated record.
        """
        limits = config or self._rate_limit_config
        now = self._now_ms()

        if not self._config.enable_rate_limiting:
            return RateLimitStatus(
                allowed=True, remaining=limits.max_requests, reset_time=now + limits.window_ms
            )

        record = self._rate_limit_store.get(identifier)

        if record is not None and record.blocked_until is not None:
            if now < record.blocked_until:
                return RateLimitStatus(
                    allowed=False,
                    remaining=0,
                    reset_time=record.reset_time,
                    blocked_until=record.blocked_until,
                )
            # Block expired, start a fresh window
            record = None

        if record is None or now > record.reset_time:
            self._rate_limit_store[identifier] = RateLimitRecord(
                count=1, reset_time=now + limits.window_ms
            )
            return RateLimitStatus(
                allowed=True,
                remaining=limits.max_requests - 1,
                reset_time=now + limits.window_ms,
            )

        record.count += 1
        if record.count > limits.max_requests:
            record.blocked_until = now + limits.block_duration_ms
            logger.warning(
                f'Rate limit exceeded for {identifier}, blocked for {limits.block_duration_ms}ms'
            )
            return RateLimitStatus(
                allowed=False,
                remaining=0,
                reset_time=record.reset_time,
                blocked_until=record.blocked_until,
            )

        return RateLimitStatus(
            allowed=True,
            remaining=limits.max_requests - record.count,
            reset_time=record.reset_time,
        )

    # Input sanitization

    def sanitize_input(self, value: str, kind: InputKind) -> SanitizationResult:
        """Screen a user supplied value.

        Only warnings containing the word 'dangerous' invalidate the input, the
        others are advisory.
        """
        if not self._config.enable_input_sanitization:
            return SanitizationResult(sanitized=value, valid=True, warnings=[])

        warnings: List[str] = []
        sanitized = value.strip()

        if kind == InputKind.FILESPEC:
            if '..' in sanitized and not sanitized.startswith('//'):
                warnings.append('Relative path traversal detected in filespec')
            if '*' in sanitized and '..' in sanitized:
                warnings.append('Wildcard with path traversal detected')
            sanitized = _SHELL_META.sub('', sanitized)

        elif kind == InputKind.PATTERN:
            if len(sanitized) > MAX_PATTERN_LENGTH:
                warnings.append(
                    f'Pattern too long, truncated to {MAX_PATTERN_LENGTH} characters'
                )
                sanitized = sanitized[:MAX_PATTERN_LENGTH]
            if '\x00' in sanitized or '\\0' in sanitized:
                warnings.append('Potentially dangerous regex pattern detected: null byte')
            if _LOOKBEHIND.search(sanitized):
                warnings.append('Potentially dangerous regex pattern detected: lookbehind')
            if _NESTED_QUANTIFIER.search(sanitized):
                warnings.append(
                    'Potentially dangerous regex pattern detected: nested quantifier'
                )

        elif kind == InputKind.PATH:
            is_absolute = os.path.isabs(sanitized) or bool(_DRIVE_PATH.match(sanitized))
            if is_absolute and not sanitized.startswith('//'):
                warnings.append("Absolute path detected, ensure it's intended")
            if '\x00' in sanitized:
                warnings.append('Null bytes detected in path')
                sanitized = sanitized.replace('\x00', '')

        valid = all(DANGEROUS_MARKER not in warning for warning in warnings)
        return SanitizationResult(sanitized=sanitized, valid=valid, warnings=warnings)

    # Memory monitoring

    def check_memory_usage(self) -> MemoryStatus:
        """Compare resident and heap memory against the configured ceiling."""
        usage = self._memory_reader()
        if not self._config.enable_memory_limits:
            return MemoryStatus(within_limits=True, usage=usage, warnings=[])

        max_mb = self._config.max_memory_mb
        max_bytes = max_mb * 1024 * 1024
        warnings = []

        if usage.rss > max_bytes:
            warnings.append(
                f'RSS memory usage ({round(usage.rss / 1024 / 1024)}MB) exceeds limit ({max_mb}MB)'
            )
        if usage.heap_used > max_bytes * HEAP_WARNING_RATIO:
            warnings.append(
                f'Heap usage ({round(usage.heap_used / 1024 / 1024)}MB) near limit ({max_mb}MB)'
            )

        return MemoryStatus(within_limits=not warnings, usage=usage, warnings=warnings)

    def force_garbage_collection(self) -> bool:
        """Run a full garbage collection pass and report whether it ran."""
        collected = gc.collect()
        logger.debug(f'Garbage collection freed {collected} objects')
        return True

    # Audit logging

    def log_audit_entry(
        self,
        tool: str,
        result: AuditOutcome,
        args: Optional[Dict[str, Any]] = None,
        user: str = 'unknown',
        client: str = 'unknown',
        operation: Optional[str] = None,
        error_code: Optional[str] = None,
        duration_ms: int = 0,
    ) -> Optional[AuditEntry]:
        """Append an audit entry and drop entries past the retention window."""
        if not self._config.enable_audit_logging:
            return None

        entry = AuditEntry(
            timestamp=datetime.fromtimestamp(self._clock(), tz=timezone.utc),
            tool=tool,
            user=user,
            client=client,
            operation=operation or tool,
            args=dict(args or {}),
            result=result,
            error_code=error_code,
            duration_ms=duration_ms,
            memory_usage=self._memory_reader(),
        )
        self._audit_log.append(entry)
        self._purge_expired()

        logger.debug(
            f'[AUDIT] {entry.tool} {entry.result.value} in {entry.duration_ms}ms '
            f'memory={entry.memory_usage.in_mb()}'
        )
        return entry

    def _purge_expired(self) -> int:
        now = datetime.fromtimestamp(self._clock(), tz=timezone.utc)
        cutoff = now - timedelta(days=self._config.audit_retention_days)
        before = len(self._audit_log)
        self._audit_log = [entry for entry in self._audit_log if entry.timestamp > cutoff]
        return before - len(self._audit_log)

    def cleanup_audit_log(self) -> int:
        """Purge entries past the retention window, returning how many were dropped."""
        purged = self._purge_expired()
        if purged:
            logger.info(f'[AUDIT] Cleaned up {purged} old audit log entries')
        return purged

    def get_audit_log(self, audit_filter: Optional[AuditFilter] = None) -> List[AuditEntry]:
        """Return audit entries matching the filter, newest first."""
        if not self._config.enable_audit_logging:
            return []

        entries = self._audit_log
        if audit_filter is not None:
            if audit_filter.tool:
                entries = [e for e in entries if e.tool == audit_filter.tool]
            if audit_filter.user:
                entries = [e for e in entries if e.user == audit_filter.user]
            if audit_filter.result:
                entries = [e for e in entries if e.result == audit_filter.result]
            if audit_filter.since:
                entries = [e for e in entries if e.timestamp >= audit_filter.since]

        return sorted(entries, key=lambda e: e.timestamp, reverse=True)

    def export_audit_log(
        self, fmt: str = 'json', audit_filter: Optional[AuditFilter] = None
    ) -> str:
        """Export audit entries as a JSON document or a fully quoted CSV table.

        CSV memory columns are expressed in whole megabytes.
        """
        entries = self.get_audit_log(audit_filter)

        if fmt == 'csv':
            buffer = io.StringIO()
            writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator='\n')
            writer.writerow(AUDIT_CSV_COLUMNS)
            for entry in entries:
                memory = entry.memory_usage.in_mb()
                writer.writerow(
                    [
                        entry.timestamp.isoformat(),
                        entry.tool,
                        entry.user,
                        entry.client,
                        entry.operation,
                        entry.result.value,
                        entry.error_code or '',
                        str(entry.duration_ms),
                        str(memory['rss']),
                        str(memory['heap_used']),
                        str(memory['heap_total']),
                    ]
                )
            return buffer.getvalue().rstrip('\n')

        return json.dumps([entry.model_dump(mode='json') for entry in entries], indent=2)

    async def start_audit_sweeper(self, interval: float) -> None:
        """Start the periodic retention sweep when audit logging is enabled."""
        if self._config.enable_audit_logging and self._sweep_task is None:
            self._sweep_task = asyncio.create_task(self._sweep_loop(interval))

    async def stop_audit_sweeper(self) -> None:
        """Stop the periodic retention sweep."""
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None

    async def _sweep_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.cleanup_audit_log()

    # Configuration

    def get_compliance_config(self) -> ComplianceConfig:
        """Return a copy of the compliance configuration."""
        return self._config.model_copy()

    def update_compliance_config(self, **changes: Any) -> None:
        """Replace selected compliance settings."""
        self._config = self._config.model_copy(update=changes)

    @property
    def rate_limit_config(self) -> RateLimitConfig:
        """Default rate limit applied per identifier."""
        return self._rate_limit_config
