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


"""Discovery and parsing of project-local Perforce config files.

A config file (named by the P4CONFIG variable, `.p4config` by default) is searched
for in the starting directory and every ancestor up to the filesystem root. The
closest match wins and its directory becomes the project root.
"""

import asyncio
import os
import re
from awslabs.perforce_mcp_server.consts import (
    CONFIG_ENV_KEYS,
    CONFIG_MARKER,
    DEFAULT_CONFIG_NAME,
    REQUIRED_CONFIG_KEYS,
)
from awslabs.perforce_mcp_server.models import (
    CommandSetup,
    EnvironmentValidation,
    P4ConfigResult,
)
from loguru import logger
from typing import Dict, Optional, Tuple


_QUOTED_VALUE = re.compile(r'([\'"])(.*)\1', re.DOTALL)


def parse_config_text(content: str) -> Dict[str, str]:
    """Parse key=value lines of a config file.

    Blank lines and lines starting with '#' or ';' are skipped. Each remaining line
    is split at the first '=', key and value are trimmed, and a value wrapped in
    matching quotes is unquoted.
    """
    config: Dict[str, str] = {}
    for line in content.split('\n'):
        trimmed = line.strip()
        if not trimmed or trimmed.startswith('#') or trimmed.startswith(';'):
            continue

        equal_index = trimmed.find('=')
        if equal_index <= 0:
            continue

        key = trimmed[:equal_index].strip()
        value = trimmed[equal_index + 1 :].strip()
        quoted = _QUOTED_VALUE.fullmatch(value)
        if quoted:
            value = quoted.group(2)
        config[key] = value
    return config


def build_environment(config: Dict[str, str], config_name: str) -> Dict[str, str]:
    """Copy the recognized connection keys of a config into environment form."""
    env = {CONFIG_MARKER: config_name}
    for key in CONFIG_ENV_KEYS:
        if config.get(key):
            env[key] = config[key]
    return env


class P4ConfigResolver:
    """Locates the project config file and derives the subprocess environment."""

    def __init__(self, config_name: Optional[str] = None):
        """Initialize the resolver.

        Args:
            config_name: Config file name; when omitted the P4CONFIG variable or
                `.p4config` is used at lookup time.
        """
        self._config_name = config_name

    @property
    def config_name(self) -> str:
        """Name of the config file to search for."""
        return self._config_name or os.environ.get(CONFIG_MARKER) or DEFAULT_CONFIG_NAME

    async def find_config(self, start_path: Optional[str] = None) -> P4ConfigResult:
        """Search upward from start_path for the config file.

        Filesystem errors are never raised; they yield a not-found result whose
        environment holds only the config marker.
        """
        config_name = self.config_name
        not_found = P4ConfigResult(found=False, environment={CONFIG_MARKER: config_name})

        try:
            config_path, project_root = await self._search_upward(
                start_path or os.getcwd(), config_name
            )
            if not config_path or not project_root:
                return not_found

            content = await asyncio.to_thread(_read_text, config_path)
        except (OSError, ValueError) as e:
            logger.debug(f'Config search failed: {e}')
            return not_found

        config = parse_config_text(content)
        return P4ConfigResult(
            found=True,
            config_path=config_path,
            project_root=project_root,
            config=config,
            environment=build_environment(config, config_name),
        )

    async def _search_upward(
        self, start_path: str, config_name: str
    ) -> Tuple[Optional[str], Optional[str]]:
        current = os.path.abspath(start_path)
        while True:
            candidate = os.path.join(current, config_name)
            if await asyncio.to_thread(os.path.isfile, candidate):
                return candidate, current

            parent = os.path.dirname(current)
            if parent == current:
                return None, None
            current = parent

    async def setup_for_command(self, workspace_path: Optional[str] = None) -> CommandSetup:
        """Resolve the working directory and environment for a p4 command.

        The discovered project root is used as working directory when a config file
        is found, otherwise the starting path itself.
        """
        start_path = workspace_path or os.getcwd()
        config_result = await self.find_config(start_path)
        return CommandSetup(
            cwd=config_result.project_root or start_path,
            env=dict(config_result.environment),
            config_result=config_result,
        )

    def validate_environment(self, config_result: P4ConfigResult) -> EnvironmentValidation:
        """Check that port, user and client are set by the config or the process."""
        errors = []
        if not config_result.found:
            errors.append(
                f'No {self.config_name} file found in current directory or parent directories'
            )

        for key in REQUIRED_CONFIG_KEYS:
            if not config_result.config.get(key) and not os.environ.get(key):
                errors.append(f'Required configuration missing: {key}')

        return EnvironmentValidation(valid=not errors, errors=errors)


def _read_text(path: str) -> str:
    with open(path, 'r', encoding='utf-8') as f:
        return f.read()
