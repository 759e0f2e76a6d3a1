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

"""Perforce MCP Server main module.

Exposes Perforce operations as MCP tools. Every tool call passes through a guard
that applies rate limiting, a memory check and audit logging before and after the
tool runs. Write and delete operations are disabled unless explicitly enabled.
"""

import argparse
import functools
import os
import re
import sys
import time
from awslabs.perforce_mcp_server.consts import (
    AUDIT_SWEEP_INTERVAL_SECONDS,
    DEFAULT_LOG_LEVEL,
    ENV_LOG_FILE,
    ENV_LOG_LEVEL,
    SERVER_NAME,
    AuditOutcome,
    ErrorCode,
)
from awslabs.perforce_mcp_server.models import P4RunResult, ServerConfig
from awslabs.perforce_mcp_server.security import SecurityManager
from awslabs.perforce_mcp_server.tools.changelists import ChangelistTools
from awslabs.perforce_mcp_server.tools.compliance import ComplianceTools
from awslabs.perforce_mcp_server.tools.context import ToolContext
from awslabs.perforce_mcp_server.tools.depot import DepotTools
from awslabs.perforce_mcp_server.tools.files import FileTools
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from loguru import logger
from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from typing import Any, AsyncIterator, Callable, Dict, Optional


SENSITIVE_PATTERNS = [
    (re.compile(r'(P4PASSWD[=:]\s*[\'"]?)[^\'"\s]+([\'"]?)', re.IGNORECASE), r'\1REDACTED\2'),
    (
        re.compile(r'(password[=:]\s*[\'"]?)[^\'"\s]+([\'"]?)', re.IGNORECASE),
        r'\1REDACTED\2',
    ),
    (re.compile(r'(ticket[=:]\s*[\'"]?)[^\'"\s]+([\'"]?)', re.IGNORECASE), r'\1REDACTED\2'),
    (re.compile(r'(token[=:]\s*[\'"]?)[^\'"\s]+([\'"]?)', re.IGNORECASE), r'\1REDACTED\2'),
    # URLs with credentials
    (re.compile(r'(\w+://)([^:@\s/]+):([^:@\s/]+)@'), r'\1REDACTED:REDACTED@'),
]


def sensitive_data_filter(record):
    """Filter that redacts passwords, tickets and credentials from log messages.

    Args:
        record: The log record to process

    Returns:
        bool: Always True, the record is kept with a redacted message
    """
    try:
        if 'message' in record:
            message = record['message']
            for pattern, replacement in SENSITIVE_PATTERNS:
                message = pattern.sub(replacement, message)
            record['message'] = message
    except Exception as e:
        record['message'] = '[SENSITIVE_DATA_FILTER_ERROR: Exception occurred during filtering]'
        logger.debug(f'Error in sensitive_data_filter: {str(e)}')

    return True


def configure_logging():
    """Replace the default loguru handler with filtered stderr and optional file sinks."""
    logger.remove()
    log_level = os.environ.get(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL).upper()
    logger.add(
        sys.stderr,
        level=log_level,
        format='{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}',
        filter=sensitive_data_filter,
    )

    log_file = os.environ.get(ENV_LOG_FILE)
    if log_file:
        logger.add(
            log_file,
            rotation='10 MB',
            retention=7,
            level=log_level,
            format='{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{function}:{line} | {message}',
            filter=sensitive_data_filter,
        )


configure_logging()


SERVER_INSTRUCTIONS = """
# Perforce MCP Server

Drive a Perforce (Helix Core) workspace through the p4 command line client.

## Configuration
- Connection settings (P4PORT, P4USER, P4CLIENT, ...) are read from the nearest .p4config
  file found upward from `workspace_path`, falling back to the process environment.
- Call p4_config_detect first when unsure which workspace and server will be used.

## Safety
- The server starts in read-only mode. Write tools (p4_add, p4_edit, p4_submit, ...) return
  P4_READONLY_MODE until P4_READONLY_MODE=false or --allow-write is given.
- p4_delete additionally requires P4_DISABLE_DELETE=false or --allow-delete.
- Calls are rate limited per tool; excessive calls are temporarily blocked.

## Results
- Every tool returns an envelope with `ok`, `result`, `warnings` and `error`.
- Failures carry a stable `error.code` such as P4_AUTH_FAILED, P4_CLIENT_UNKNOWN,
  P4_CONNECTION_FAILED or P4_NOT_UNDER_CLIENT.

## Typical workflow
1. p4_info / p4_status to inspect the workspace
2. p4_sync to get the latest revisions
3. p4_edit or p4_add, then p4_diff to review changes
4. p4_changelist_create and p4_changelist_submit, or p4_submit
"""

SERVER_DEPENDENCIES = [
    'pydantic',
    'loguru',
    'psutil',
]


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class ToolGuard:
    """Wraps tool functions with rate limiting, memory checks and audit logging."""

    def __init__(self, security: SecurityManager):
        """Initialize with the security manager shared by all tools."""
        self._security = security

    def __call__(self, name: str, func: Callable) -> Callable:
        """Return func guarded under the tool name.

        The wrapper keeps the signature of func so the tool schema is unchanged.
        """

        @functools.wraps(func)
        async def guarded(*args: Any, **kwargs: Any) -> Any:
            logger.info(f'tool-name: {name}')
            logger.info(f'tool-args: {kwargs}')
            start = time.monotonic()

            status = self._security.check_rate_limit(name)
            if not status.allowed:
                self._security.log_audit_entry(
                    tool=name,
                    result=AuditOutcome.BLOCKED,
                    args=kwargs,
                    error_code=ErrorCode.RATE_LIMIT_EXCEEDED.value,
                    duration_ms=_elapsed_ms(start),
                )
                retry_at = datetime.fromtimestamp(
                    (status.blocked_until or status.reset_time) / 1000, tz=timezone.utc
                )
                logger.warning(f'Rate limit exceeded: {name}')
                raise ToolError(
                    f'Rate limit exceeded for tool {name}. Try again after {retry_at.isoformat()}'
                )

            memory = self._security.check_memory_usage()
            if not memory.within_limits:
                logger.warning(f'Memory limit exceeded: {", ".join(memory.warnings)}')
                if self._security.force_garbage_collection():
                    logger.info('Forced garbage collection')

            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                logger.error(f'Tool {name} failed: {e}')
                self._security.log_audit_entry(
                    tool=name,
                    result=AuditOutcome.ERROR,
                    args=kwargs,
                    error_code=ErrorCode.INTERNAL_ERROR.value,
                    duration_ms=_elapsed_ms(start),
                )
                raise ToolError(f'Tool execution failed: {e}') from e

            self._audit_result(name, kwargs, result, start)
            return result

        return guarded

    def _audit_result(self, name: str, kwargs: Dict[str, Any], result: Any, start: float):
        config_used = result.config_used if isinstance(result, P4RunResult) else {}
        ok = result.ok if isinstance(result, P4RunResult) else True
        error = result.error if isinstance(result, P4RunResult) else None
        error_code = error.code if error else None
        self._security.log_audit_entry(
            tool=name,
            result=AuditOutcome.SUCCESS if ok else AuditOutcome.ERROR,
            args=kwargs,
            user=config_used.get('P4USER') or 'unknown',
            client=config_used.get('P4CLIENT') or 'unknown',
            error_code=error_code,
            duration_ms=_elapsed_ms(start),
        )


def make_lifespan(security: SecurityManager):
    """Build the server lifespan that runs the audit retention sweep."""

    @asynccontextmanager
    async def server_lifespan(server: FastMCP) -> AsyncIterator[None]:
        logger.info('Perforce MCP server initializing')
        await security.start_audit_sweeper(AUDIT_SWEEP_INTERVAL_SECONDS)
        try:
            yield
        finally:
            logger.info('Perforce MCP server shutting down')
            await security.stop_audit_sweeper()

    return server_lifespan


def create_server(context: Optional[ToolContext] = None) -> FastMCP:
    """Create the MCP server and register every tool group behind the guard."""
    context = context or ToolContext()
    mcp = FastMCP(
        SERVER_NAME,
        instructions=SERVER_INSTRUCTIONS,
        dependencies=SERVER_DEPENDENCIES,
        lifespan=make_lifespan(context.security),
    )

    guard = ToolGuard(context.security)
    for tools in (
        FileTools(context),
        ChangelistTools(context),
        DepotTools(context),
        ComplianceTools(context),
    ):
        tools.register(mcp, guard)

    return mcp


def main():
    """Run the MCP server with CLI argument support."""
    parser = argparse.ArgumentParser(
        description='An AWS Labs Model Context Protocol (MCP) server for Perforce'
    )
    parser.add_argument(
        '--allow-write',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='Enable write operations (overrides P4_READONLY_MODE)',
    )
    parser.add_argument(
        '--allow-delete',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='Enable delete operations (overrides P4_DISABLE_DELETE)',
    )
    args = parser.parse_args()

    server_config = ServerConfig.from_env()
    if args.allow_write is not None:
        server_config.readonly_mode = not args.allow_write
    if args.allow_delete is not None:
        server_config.disable_delete = not args.allow_delete

    mode_info = []
    if server_config.readonly_mode:
        mode_info.append('read-only mode')
    if server_config.disable_delete:
        mode_info.append('delete protection')
    mode_str = ' in ' + ', '.join(mode_info) if mode_info else ''
    logger.info(f'Starting Perforce MCP Server{mode_str}')

    mcp = create_server(ToolContext(server_config=server_config))
    mcp.run()

    return mcp


if __name__ == '__main__':
    main()
