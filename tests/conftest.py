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


"""Shared test fixtures for the Perforce MCP server tests."""

import pytest
from awslabs.perforce_mcp_server.models import (
    CommandSetup,
    ComplianceConfig,
    MemoryUsage,
    P4ConfigResult,
    P4Error,
    P4RunResult,
    RateLimitConfig,
    ServerConfig,
)
from awslabs.perforce_mcp_server.security import SecurityManager
from awslabs.perforce_mcp_server.tools.context import ToolContext
from unittest.mock import AsyncMock, MagicMock


MB = 1024 * 1024
NOW = 1_700_000_000.0


class FakeClock:
    """Settable clock returning seconds since the epoch."""

    def __init__(self, now: float = NOW):
        """Start the clock at now."""
        self.now = now

    def __call__(self) -> float:
        """Return the current fake time."""
        return self.now

    def advance_ms(self, milliseconds: int):
        """Move the clock forward."""
        self.now += milliseconds / 1000


@pytest.fixture
def clock():
    """A fake clock shared by the security manager of a test."""
    return FakeClock()


@pytest.fixture
def memory_usage():
    """Mutable memory figures returned by the fake memory reader."""
    return {'usage': MemoryUsage(rss=100 * MB, heap_used=50 * MB, heap_total=200 * MB)}


@pytest.fixture
def security(clock, memory_usage):
    """A security manager with audit logging enabled and small rate limits."""
    return SecurityManager(
        config=ComplianceConfig(enable_audit_logging=True, max_memory_mb=512),
        rate_limit_config=RateLimitConfig(max_requests=3, window_ms=60000, block_duration_ms=120000),
        clock=clock,
        memory_reader=lambda: memory_usage['usage'],
    )


@pytest.fixture
def p4_result():
    """Factory for runner envelopes."""

    def _make(result=None, ok=True, error_code=None, message='failed', warnings=None, **kwargs):
        values = {
            'ok': ok,
            'command': 'p4',
            'args': kwargs.pop('args', []),
            'cwd': kwargs.pop('cwd', '/ws'),
            'config_used': kwargs.pop('config_used', {'P4USER': 'bob', 'P4CLIENT': 'bob-ws'}),
            'result': result,
            'warnings': warnings,
        }
        if not ok:
            values['error'] = P4Error(code=error_code or 'P4_COMMAND_FAILED', message=message)
        return P4RunResult(**values)

    return _make


@pytest.fixture
def tool_context(security):
    """A tool context with a mocked runner and config resolver, writes enabled."""
    runner = MagicMock()
    runner.run = AsyncMock()

    config = MagicMock()
    config.setup_for_command = AsyncMock(
        return_value=CommandSetup(
            cwd='/ws',
            env={'P4CONFIG': '.p4config', 'P4USER': 'bob', 'P4CLIENT': 'bob-ws'},
            config_result=P4ConfigResult(
                found=True,
                config_path='/ws/.p4config',
                project_root='/ws',
                config={'P4USER': 'bob', 'P4CLIENT': 'bob-ws'},
                environment={'P4CONFIG': '.p4config', 'P4USER': 'bob', 'P4CLIENT': 'bob-ws'},
            ),
        )
    )

    return ToolContext(
        runner=runner,
        config=config,
        server_config=ServerConfig(readonly_mode=False, disable_delete=False),
        security=security,
    )
