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


"""Pydantic models for the Perforce MCP server."""

import os
from awslabs.perforce_mcp_server.consts import (
    DEFAULT_AUDIT_RETENTION_DAYS,
    DEFAULT_MAX_MEMORY_MB,
    DEFAULT_RATE_LIMIT_BLOCK_MS,
    DEFAULT_RATE_LIMIT_REQUESTS,
    DEFAULT_RATE_LIMIT_WINDOW_MS,
    ENV_AUDIT_RETENTION_DAYS,
    ENV_DISABLE_DELETE,
    ENV_ENABLE_AUDIT_LOGGING,
    ENV_ENABLE_INPUT_SANITIZATION,
    ENV_ENABLE_MEMORY_LIMITS,
    ENV_ENABLE_RATE_LIMITING,
    ENV_MAX_MEMORY_MB,
    ENV_RATE_LIMIT_BLOCK_MS,
    ENV_RATE_LIMIT_REQUESTS,
    ENV_RATE_LIMIT_WINDOW_MS,
    ENV_READONLY_MODE,
    AuditOutcome,
    OutputFormat,
)
from datetime import datetime
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Any, Dict, List, Optional


def env_int(name: str, default: int) -> int:
    """Read an integer environment variable, falling back to the default."""
    raw = os.environ.get(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f'Ignoring non-integer value for {name}: {raw!r}, using {default}')
        return default


def env_enabled_unless_false(name: str) -> bool:
    """Return True unless the variable is exactly 'false'."""
    return os.environ.get(name) != 'false'


def env_enabled_if_true(name: str) -> bool:
    """Return True only when the variable is exactly 'true'."""
    return os.environ.get(name) == 'true'


class P4Error(BaseModel):
    """Error record of a failed p4 invocation."""

    code: str = Field(..., description='Stable error code')
    message: str = Field(..., description='Human readable error message')
    details: Optional[str] = Field(
        default=None, description='Raw stderr or stdout excerpt from the executable'
    )
    stderr: Optional[str] = Field(default=None, description='Raw stderr of the process')
    exit_code: Optional[int] = Field(default=None, description='Process exit code')


class P4RunResult(BaseModel):
    """Outcome of exactly one p4 invocation or one tool call.

    Success and error are mutually exclusive, and warnings may accompany a
    successful result only.
    """

    ok: bool = Field(..., description='Whether the command succeeded')
    command: str = Field(..., description='Executable path or tool operation name')
    args: List[str] = Field(default_factory=list, description='Full argument vector')
    cwd: str = Field(..., description='Working directory used for the command')
    config_used: Dict[str, Optional[str]] = Field(
        default_factory=dict,
        description='Connection settings in effect, with the password masked',
    )
    result: Any = Field(default=None, description='Parsed result or trimmed raw output')
    warnings: Optional[List[str]] = Field(
        default=None, description='Non-fatal stderr lines from a successful command'
    )
    error: Optional[P4Error] = Field(default=None, description='Error record on failure')

    @model_validator(mode='after')
    def check_outcome(self) -> 'P4RunResult':
        """Enforce that success and error are mutually exclusive."""
        if self.ok and self.error is not None:
            raise ValueError('a successful result cannot carry an error')
        if not self.ok and self.error is None:
            raise ValueError('a failed result must carry an error')
        if not self.ok and self.warnings:
            raise ValueError('warnings are only allowed on a successful result')
        return self

    def with_config_path(self, config_path: Optional[str]) -> 'P4RunResult':
        """Return a copy that records which config file was used."""
        config_used = {**self.config_used, 'p4config_path': config_path}
        return self.model_copy(update={'config_used': config_used})


class RunOptions(BaseModel):
    """Options for a single p4 invocation."""

    timeout_ms: Optional[int] = None
    env: Dict[str, str] = Field(default_factory=dict)
    output_format: OutputFormat = OutputFormat.TEXT
    parse_output: bool = True
    max_memory_mb: Optional[int] = None
    input_text: Optional[str] = None


class P4ConfigResult(BaseModel):
    """Result of searching for a project config file."""

    found: bool
    config_path: Optional[str] = None
    project_root: Optional[str] = None
    config: Dict[str, str] = Field(default_factory=dict)
    environment: Dict[str, str] = Field(default_factory=dict)


class CommandSetup(BaseModel):
    """Working directory and environment resolved for a command."""

    cwd: str
    env: Dict[str, str]
    config_result: P4ConfigResult


class EnvironmentValidation(BaseModel):
    """Outcome of checking that the required connection settings exist."""

    valid: bool
    errors: List[str] = Field(default_factory=list)


class ServerConfig(BaseModel):
    """Server-wide mode flags."""

    readonly_mode: bool = True
    disable_delete: bool = True

    @classmethod
    def from_env(cls) -> 'ServerConfig':
        """Build the server config from environment variables."""
        return cls(
            readonly_mode=env_enabled_unless_false(ENV_READONLY_MODE),
            disable_delete=env_enabled_unless_false(ENV_DISABLE_DELETE),
        )


class ComplianceConfig(BaseModel):
    """Feature toggles and limits of the safety policies."""

    enable_audit_logging: bool = False
    enable_rate_limiting: bool = True
    enable_memory_limits: bool = True
    enable_input_sanitization: bool = True
    max_memory_mb: int = DEFAULT_MAX_MEMORY_MB
    audit_retention_days: int = DEFAULT_AUDIT_RETENTION_DAYS

    @classmethod
    def from_env(cls) -> 'ComplianceConfig':
        """Build the compliance config from environment variables."""
        return cls(
            enable_audit_logging=env_enabled_if_true(ENV_ENABLE_AUDIT_LOGGING),
            enable_rate_limiting=env_enabled_unless_false(ENV_ENABLE_RATE_LIMITING),
            enable_memory_limits=env_enabled_unless_false(ENV_ENABLE_MEMORY_LIMITS),
            enable_input_sanitization=env_enabled_unless_false(ENV_ENABLE_INPUT_SANITIZATION),
            max_memory_mb=env_int(ENV_MAX_MEMORY_MB, DEFAULT_MAX_MEMORY_MB),
            audit_retention_days=env_int(ENV_AUDIT_RETENTION_DAYS, DEFAULT_AUDIT_RETENTION_DAYS),
        )


class RateLimitConfig(BaseModel):
    """Sliding window limits applied per tool name."""

    max_requests: int = DEFAULT_RATE_LIMIT_REQUESTS
    window_ms: int = DEFAULT_RATE_LIMIT_WINDOW_MS
    block_duration_ms: int = DEFAULT_RATE_LIMIT_BLOCK_MS

    @classmethod
    def from_env(cls) -> 'RateLimitConfig':
        """Build the rate limit config from environment variables."""
        return cls(
            max_requests=env_int(ENV_RATE_LIMIT_REQUESTS, DEFAULT_RATE_LIMIT_REQUESTS),
            window_ms=env_int(ENV_RATE_LIMIT_WINDOW_MS, DEFAULT_RATE_LIMIT_WINDOW_MS),
            block_duration_ms=env_int(ENV_RATE_LIMIT_BLOCK_MS, DEFAULT_RATE_LIMIT_BLOCK_MS),
        )


class RateLimitStatus(BaseModel):
    """Result of a rate limit check. Times are epoch milliseconds."""

    allowed: bool
    remaining: int
    reset_time: int
    blocked_until: Optional[int] = None


class MemoryUsage(BaseModel):
    """Process memory figures in bytes."""

    rss: int
    heap_used: int
    heap_total: int

    def in_mb(self) -> Dict[str, int]:
        """Return the figures rounded to whole megabytes."""
        return {
            'rss': round(self.rss / 1024 / 1024),
            'heap_used': round(self.heap_used / 1024 / 1024),
            'heap_total': round(self.heap_total / 1024 / 1024),
        }


class MemoryStatus(BaseModel):
    """Result of a memory check."""

    within_limits: bool
    usage: MemoryUsage
    warnings: List[str] = Field(default_factory=list)


class SanitizationResult(BaseModel):
    """Result of screening one input value."""

    sanitized: str
    valid: bool
    warnings: List[str] = Field(default_factory=list)


class AuditEntry(BaseModel):
    """One audited tool invocation."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    tool: str
    user: str = 'unknown'
    client: str = 'unknown'
    operation: str
    args: Dict[str, Any] = Field(default_factory=dict)
    result: AuditOutcome
    error_code: Optional[str] = None
    duration_ms: int = 0
    memory_usage: MemoryUsage


class AuditFilter(BaseModel):
    """Filter applied when querying the audit log."""

    tool: Optional[str] = None
    user: Optional[str] = None
    result: Optional[AuditOutcome] = None
    since: Optional[datetime] = None
