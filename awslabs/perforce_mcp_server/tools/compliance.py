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

"""Configuration detection and compliance reporting tools.

None of these tools spawn the p4 executable.
"""

import asyncio
import os
from awslabs.perforce_mcp_server.consts import (
    AUDIT_DISABLED_MESSAGE,
    MASKED_VALUE,
    PASSWORD_KEY,
    AuditOutcome,
    ErrorCode,
)
from awslabs.perforce_mcp_server.models import AuditFilter, P4RunResult
from awslabs.perforce_mcp_server.runner import extract_config_from_env
from awslabs.perforce_mcp_server.tools.arguments import (
    AuditArgs,
    ComplianceArgs,
    ConfigDetectArgs,
)
from awslabs.perforce_mcp_server.tools.context import (
    ToolContext,
    WorkspacePath,
    invalid_args,
    rejection,
    unguarded,
)
from loguru import logger
from pydantic import Field, ValidationError
from typing import Annotated, Callable, Dict, Literal, Optional


def _masked(values: Dict[str, str]) -> Dict[str, str]:
    return {k: MASKED_VALUE if k == PASSWORD_KEY else v for k, v in values.items()}


class ComplianceTools:
    """Tools reporting configuration, audit log and compliance status."""

    def __init__(self, context: ToolContext):
        """Initialize with the shared tool context."""
        self._context = context

    def register(self, mcp, guard: Callable = unguarded):
        """Register compliance tools with the MCP server."""
        tools = {
            'p4_config_detect': self.p4_config_detect,
            'p4_audit': self.p4_audit,
            'p4_compliance': self.p4_compliance,
        }
        for name, func in tools.items():
            mcp.tool(name=name)(guard(name, func))

    async def p4_config_detect(self, workspace_path: WorkspacePath = None) -> P4RunResult:
        """Find the .p4config file for a directory and check the connection settings.

        Missing settings are reported as warnings; the call itself succeeds whenever
        the search could run.
        """
        try:
            request = ConfigDetectArgs(workspace_path=workspace_path)
        except ValidationError as e:
            return invalid_args(ConfigDetectArgs.operation, e)

        start_path = request.workspace_path or os.getcwd()
        if not await asyncio.to_thread(os.path.isdir, start_path):
            return rejection(
                ConfigDetectArgs.operation,
                ErrorCode.CONFIG_NOT_FOUND,
                f'Failed to detect configuration: {start_path} is not a directory',
            )

        config_result = await self._context.config.find_config(start_path)
        validation = self._context.config.validate_environment(config_result)
        logger.info(f'Config detection from {start_path}: found={config_result.found}')

        return P4RunResult(
            ok=True,
            command=ConfigDetectArgs.operation,
            args=[],
            cwd=start_path,
            config_used={
                'p4config_path': config_result.config_path,
                **extract_config_from_env(config_result.environment),
            },
            result={
                'found': config_result.found,
                'configPath': config_result.config_path,
                'projectRoot': config_result.project_root,
                'config': _masked(config_result.config),
                'environment': _masked(config_result.environment),
                'validation': validation.model_dump(),
                'searchPath': start_path,
            },
            warnings=validation.errors or None,
        )

    async def p4_audit(
        self,
        tool: Annotated[Optional[str], Field(description='Only entries of this tool')] = None,
        user: Annotated[Optional[str], Field(description='Only entries of this user')] = None,
        result: Annotated[
            Optional[AuditOutcome], Field(description='Only entries with this outcome')
        ] = None,
        since: Annotated[
            Optional[str], Field(description='ISO 8601 timestamp; only newer entries')
        ] = None,
        format: Annotated[Literal['json', 'csv'], Field(description='Result format')] = 'json',
    ) -> P4RunResult:
        """Query the in-memory audit log. Requires P4_ENABLE_AUDIT_LOGGING=true."""
        security = self._context.security
        compliance = security.get_compliance_config()
        if not compliance.enable_audit_logging:
            return rejection(AuditArgs.operation, ErrorCode.AUDIT_DISABLED, AUDIT_DISABLED_MESSAGE)

        try:
            request = AuditArgs(tool=tool, user=user, result=result, since=since, format=format)
        except ValidationError as e:
            return invalid_args(AuditArgs.operation, e)

        audit_filter = AuditFilter(
            tool=request.tool, user=request.user, result=request.result, since=request.since
        )
        if request.format == 'csv':
            data = security.export_audit_log('csv', audit_filter)
        else:
            entries = security.get_audit_log(audit_filter)
            data = {
                'totalEntries': len(entries),
                'entries': [entry.model_dump(mode='json') for entry in entries],
                'complianceConfig': compliance.model_dump(),
            }

        return P4RunResult(
            ok=True, command=AuditArgs.operation, args=[], cwd=os.getcwd(), result=data
        )

    async def p4_compliance(self) -> P4RunResult:
        """Report compliance settings, memory status, server config and audit log size."""
        security = self._context.security
        compliance = security.get_compliance_config()
        memory = security.check_memory_usage()

        audit_stats = None
        if compliance.enable_audit_logging:
            audit_stats = {
                'totalEntries': len(security.get_audit_log()),
                'retentionDays': compliance.audit_retention_days,
            }

        return P4RunResult(
            ok=True,
            command=ComplianceArgs.operation,
            args=[],
            cwd=os.getcwd(),
            result={
                'complianceConfig': compliance.model_dump(),
                'memoryStatus': {
                    'withinLimits': memory.within_limits,
                    'currentUsage': memory.usage.in_mb(),
                    'maxMemoryMB': compliance.max_memory_mb,
                    'warnings': memory.warnings,
                },
                'serverConfig': self._context.server_config.model_dump(),
                'auditLogStats': audit_stats,
            },
        )
