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


"""Constants for the Perforce MCP server."""

import sys
from enum import Enum


SERVER_NAME = 'awslabs.perforce-mcp-server'

# Executable and configuration discovery
DEFAULT_P4_EXECUTABLE = 'p4.exe' if sys.platform == 'win32' else 'p4'
DEFAULT_CONFIG_NAME = '.p4config'
CONFIG_MARKER = 'P4CONFIG'

# Environment variables
ENV_P4_PATH = 'P4_PATH'
ENV_TIMEOUT_MS = 'P4_TIMEOUT_MS'
ENV_MAX_MEMORY_MB = 'P4_MAX_MEMORY_MB'
ENV_READONLY_MODE = 'P4_READONLY_MODE'
ENV_DISABLE_DELETE = 'P4_DISABLE_DELETE'
ENV_ENABLE_AUDIT_LOGGING = 'P4_ENABLE_AUDIT_LOGGING'
ENV_ENABLE_RATE_LIMITING = 'P4_ENABLE_RATE_LIMITING'
ENV_ENABLE_MEMORY_LIMITS = 'P4_ENABLE_MEMORY_LIMITS'
ENV_ENABLE_INPUT_SANITIZATION = 'P4_ENABLE_INPUT_SANITIZATION'
ENV_AUDIT_RETENTION_DAYS = 'P4_AUDIT_RETENTION_DAYS'
ENV_RATE_LIMIT_REQUESTS = 'P4_RATE_LIMIT_REQUESTS'
ENV_RATE_LIMIT_WINDOW_MS = 'P4_RATE_LIMIT_WINDOW_MS'
ENV_RATE_LIMIT_BLOCK_MS = 'P4_RATE_LIMIT_BLOCK_MS'
ENV_LOG_LEVEL = 'FASTMCP_LOG_LEVEL'
ENV_LOG_FILE = 'P4_MCP_LOG_FILE'

# Defaults
DEFAULT_TIMEOUT_MS = 60000
DEFAULT_MAX_MEMORY_MB = 512
DEFAULT_AUDIT_RETENTION_DAYS = 90
DEFAULT_RATE_LIMIT_REQUESTS = 100
DEFAULT_RATE_LIMIT_WINDOW_MS = 600000
DEFAULT_RATE_LIMIT_BLOCK_MS = 3600000
DEFAULT_LOG_LEVEL = 'WARNING'
AUDIT_SWEEP_INTERVAL_SECONDS = 24 * 60 * 60
HEAP_WARNING_RATIO = 0.8
MAX_PATTERN_LENGTH = 1000

# Keys copied from a config file into the subprocess environment
CONFIG_ENV_KEYS = (
    'P4PORT',
    'P4USER',
    'P4CLIENT',
    'P4CHARSET',
    'P4PASSWD',
    'P4COMMANDCHARSET',
    'P4LANGUAGE',
    'P4DIFF',
    'P4MERGE',
    'P4EDITOR',
)
REQUIRED_CONFIG_KEYS = ('P4PORT', 'P4USER', 'P4CLIENT')

# Connection keys echoed back in a result envelope
CONNECTION_KEYS = ('P4PORT', 'P4USER', 'P4CLIENT', 'P4CHARSET', 'P4PASSWD')
PASSWORD_KEY = 'P4PASSWD'
MASKED_VALUE = '***masked***'

# Request limits
MAX_FILES = 1000
MAX_PATH_LENGTH = 4096
MAX_DESCRIPTION_LENGTH = 32767

# Sanitizer marker; only warnings containing it invalidate an input
DANGEROUS_MARKER = 'dangerous'

READONLY_MESSAGE = (
    'Server is in read-only mode. Set P4_READONLY_MODE=false to enable write operations.'
)
DELETE_DISABLED_MESSAGE = (
    'Delete operations are disabled for safety. '
    'Set P4_DISABLE_DELETE=false to enable delete operations.'
)
AUDIT_DISABLED_MESSAGE = 'Audit logging is disabled. Set P4_ENABLE_AUDIT_LOGGING=true to enable.'


class ErrorCode(str, Enum):
    """Stable error codes reported in result envelopes."""

    NOT_FOUND = 'P4_NOT_FOUND'
    AUTH_FAILED = 'P4_AUTH_FAILED'
    CLIENT_UNKNOWN = 'P4_CLIENT_UNKNOWN'
    CONNECTION_FAILED = 'P4_CONNECTION_FAILED'
    TIMEOUT = 'P4_TIMEOUT'
    NOT_UNDER_CLIENT = 'P4_NOT_UNDER_CLIENT'
    COMMAND_FAILED = 'P4_COMMAND_FAILED'
    MEMORY_LIMIT = 'P4_MEMORY_LIMIT'
    INVALID_ARGS = 'P4_INVALID_ARGS'
    AUDIT_DISABLED = 'P4_AUDIT_DISABLED'
    READONLY_MODE = 'P4_READONLY_MODE'
    DELETE_DISABLED = 'P4_DELETE_DISABLED'
    CONFIG_NOT_FOUND = 'P4_CONFIG_NOT_FOUND'
    RATE_LIMIT_EXCEEDED = 'RATE_LIMIT_EXCEEDED'
    INTERNAL_ERROR = 'INTERNAL_ERROR'


class AuditOutcome(str, Enum):
    """Outcome tag recorded for each audited tool call."""

    SUCCESS = 'success'
    ERROR = 'error'
    BLOCKED = 'blocked'


class InputKind(str, Enum):
    """Kinds of user input screened by the sanitizer."""

    FILESPEC = 'filespec'
    PATTERN = 'pattern'
    PATH = 'path'


class OutputFormat(str, Enum):
    """Output mode requested from the p4 executable."""

    TEXT = 'text'
    TAGGED = 'tagged'
    MARSHALLED = 'marshalled'
