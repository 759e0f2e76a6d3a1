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


"""Execution of the p4 executable.

The runner never raises for a VCS failure. Spawn errors, timeouts and non-zero
exits are all folded into the error record of the returned P4RunResult.
"""

import asyncio
import errno
import os
import subprocess
import sys
from awslabs.perforce_mcp_server.consts import (
    CONFIG_MARKER,
    CONNECTION_KEYS,
    DEFAULT_CONFIG_NAME,
    DEFAULT_MAX_MEMORY_MB,
    DEFAULT_P4_EXECUTABLE,
    DEFAULT_TIMEOUT_MS,
    ENV_MAX_MEMORY_MB,
    ENV_P4_PATH,
    ENV_TIMEOUT_MS,
    MASKED_VALUE,
    PASSWORD_KEY,
    ErrorCode,
    OutputFormat,
)
from awslabs.perforce_mcp_server.models import P4Error, P4RunResult, RunOptions, env_int
from awslabs.perforce_mcp_server.parsers import (
    parse_tagged,
    parse_text_output,
    split_script_warnings,
    strip_script_tags,
)
from awslabs.perforce_mcp_server.security import read_memory_usage
from loguru import logger
from typing import Any, Dict, List, Mapping, Optional, Tuple


class P4TimeoutError(Exception):
    """Raised when a p4 process outlives its timeout."""


def extract_config_from_env(env: Mapping[str, Optional[str]]) -> Dict[str, Optional[str]]:
    """Return the connection settings of env with the password masked."""
    config: Dict[str, Optional[str]] = {}
    for key in CONNECTION_KEYS:
        if env.get(key):
            config[key] = MASKED_VALUE if key == PASSWORD_KEY else env[key]
    return config


def map_error(exit_code: int, stderr: str, stdout: str) -> P4Error:
    """Map a failed invocation to a stable error code.

    Known failure signatures are matched in order against stderr, or stdout when
    stderr is empty. Anything unmatched becomes P4_COMMAND_FAILED.
    """
    error_message = stderr or stdout or 'Unknown error'
    readable = strip_script_tags(error_message).strip() or error_message

    def error(code: ErrorCode, message: str) -> P4Error:
        return P4Error(
            code=code.value,
            message=message,
            details=readable,
            stderr=stderr,
            exit_code=exit_code,
        )

    if 'Command timeout' in error_message:
        return error(ErrorCode.TIMEOUT, 'Perforce command timed out')
    if exit_code == 127 or 'ENOENT' in error_message or 'command not found' in error_message:
        return error(ErrorCode.NOT_FOUND, 'Perforce executable not found or not accessible')
    if 'Perforce password' in error_message or 'Access denied' in error_message:
        return error(ErrorCode.AUTH_FAILED, 'Perforce authentication failed')
    if "Client '" in error_message and "' unknown" in error_message:
        return error(ErrorCode.CLIENT_UNKNOWN, 'Perforce client/workspace unknown')
    if 'Connect to server failed' in error_message or 'TCP connect' in error_message:
        return error(ErrorCode.CONNECTION_FAILED, 'Failed to connect to Perforce server')
    if 'timeout' in error_message:
        return error(ErrorCode.TIMEOUT, 'Perforce command timed out')
    if 'not under client' in error_message:
        return error(ErrorCode.NOT_UNDER_CLIENT, 'File(s) not under client root')

    fallback = f'Command failed with exit code {exit_code}'
    return error(ErrorCode.COMMAND_FAILED, readable or fallback)


def parse_output(output: str, output_format: OutputFormat) -> Any:
    """Parse successful stdout according to the requested output mode.

    Marshalled output is not decoded; it is returned as raw text marked unparsed.
    """
    if output_format == OutputFormat.MARSHALLED:
        return {'raw': output, 'unparsed': True, 'note': 'Marshalled output is not parsed'}
    if output_format == OutputFormat.TAGGED:
        return parse_tagged(output)
    return parse_text_output(output)


class P4Runner:
    """Runs p4 subcommands as subprocesses and wraps the outcome."""

    def __init__(
        self,
        p4_path: Optional[str] = None,
        timeout_ms: Optional[int] = None,
        max_memory_mb: Optional[int] = None,
    ):
        """Initialize the runner.

        Args:
            p4_path: Executable to run, defaults to P4_PATH or the platform p4 name
            timeout_ms: Default timeout, defaults to P4_TIMEOUT_MS; zero or less disables it
            max_memory_mb: Resident memory ceiling checked before every spawn
        """
        self.p4_path = p4_path or os.environ.get(ENV_P4_PATH) or DEFAULT_P4_EXECUTABLE
        self.timeout_ms = (
            timeout_ms if timeout_ms is not None else env_int(ENV_TIMEOUT_MS, DEFAULT_TIMEOUT_MS)
        )
        self.max_memory_mb = (
            max_memory_mb
            if max_memory_mb is not None
            else env_int(ENV_MAX_MEMORY_MB, DEFAULT_MAX_MEMORY_MB)
        )

    def build_args(
        self, command: str, args: List[str], output_format: OutputFormat, has_input: bool = False
    ) -> List[str]:
        """Build the argument vector: global flags, subcommand, then args verbatim."""
        full_args = ['-s']
        if output_format == OutputFormat.MARSHALLED and not has_input:
            full_args.append('-G')
        elif output_format in (OutputFormat.TAGGED, OutputFormat.MARSHALLED):
            full_args.append('-ztag')
        full_args.append(command)
        full_args.extend(args)
        return full_args

    async def run(
        self,
        command: str,
        args: Optional[List[str]] = None,
        cwd: Optional[str] = None,
        options: Optional[RunOptions] = None,
    ) -> P4RunResult:
        """Run a p4 subcommand and return its result envelope.

        Args:
            command: The p4 subcommand, e.g. 'opened'
            args: Arguments passed after the subcommand without any quoting
            cwd: Working directory, defaults to the current directory
            options: Timeout, environment, output mode and parsing options

        Returns:
            P4RunResult: The outcome of the invocation
        """
        args = list(args or [])
        cwd = cwd or os.getcwd()
        options = options or RunOptions()
        max_memory_mb = options.max_memory_mb or self.max_memory_mb

        current_mb = read_memory_usage().rss / 1024 / 1024
        if current_mb > max_memory_mb:
            logger.warning(f'Refusing to run p4 {command}: {current_mb:.1f}MB in use')
            return P4RunResult(
                ok=False,
                command=self.p4_path,
                args=[command, *args],
                cwd=cwd,
                config_used={},
                error=P4Error(
                    code=ErrorCode.MEMORY_LIMIT.value,
                    message=f'Memory limit exceeded: {current_mb:.1f}MB > {max_memory_mb}MB',
                ),
            )

        full_args = self.build_args(
            command, args, options.output_format, has_input=options.input_text is not None
        )
        process_env = {
            **os.environ,
            **options.env,
            CONFIG_MARKER: options.env.get(CONFIG_MARKER)
            or os.environ.get(CONFIG_MARKER)
            or DEFAULT_CONFIG_NAME,
        }
        timeout_ms = options.timeout_ms if options.timeout_ms is not None else self.timeout_ms
        config_used = extract_config_from_env(process_env)

        logger.debug(f'Running {self.p4_path} {" ".join(full_args)} in {cwd}')
        try:
            stdout, stderr, exit_code = await self._spawn(
                full_args, cwd, process_env, timeout_ms, options.input_text
            )
        except P4TimeoutError as e:
            logger.warning(f'p4 {command} timed out after {timeout_ms}ms')
            return P4RunResult(
                ok=False,
                command=self.p4_path,
                args=full_args,
                cwd=cwd,
                config_used=config_used,
                error=map_error(-1, str(e), ''),
            )
        except OSError as e:
            logger.error(f'Failed to start {self.p4_path}: {e}')
            message = f'spawn {self.p4_path} ENOENT' if e.errno == errno.ENOENT else str(e)
            return P4RunResult(
                ok=False,
                command=self.p4_path,
                args=full_args,
                cwd=cwd,
                config_used=config_used,
                error=map_error(-1, message, ''),
            )

        logger.debug(f'p4 {command} exited with {exit_code}')
        if stderr:
            logger.debug(f'p4 {command} stderr: {stderr.strip()}')

        if exit_code != 0:
            return P4RunResult(
                ok=False,
                command=self.p4_path,
                args=full_args,
                cwd=cwd,
                config_used=config_used,
                error=map_error(exit_code, stderr, stdout),
            )

        script_warnings: List[str] = []
        if options.output_format != OutputFormat.MARSHALLED:
            stdout, script_warnings = split_script_warnings(stdout)
            stdout = strip_script_tags(stdout)

        if options.parse_output and stdout.strip():
            result = parse_output(stdout, options.output_format)
        else:
            result = stdout.strip() or None

        stderr_lines = [line for line in stderr.split('\n') if line.strip()]
        warnings = [*script_warnings, *stderr_lines] or None
        return P4RunResult(
            ok=True,
            command=self.p4_path,
            args=full_args,
            cwd=cwd,
            config_used=config_used,
            result=result,
            warnings=warnings,
        )

    async def _spawn(
        self,
        args: List[str],
        cwd: str,
        env: Dict[str, str],
        timeout_ms: int,
        input_text: Optional[str],
    ) -> Tuple[str, str, int]:
        kwargs = {}
        if sys.platform == 'win32':
            kwargs['creationflags'] = subprocess.CREATE_NO_WINDOW

        process = await asyncio.create_subprocess_exec(
            self.p4_path,
            *args,
            cwd=cwd,
            env=env,
            stdin=asyncio.subprocess.PIPE
            if input_text is not None
            else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            **kwargs,
        )

        input_bytes = input_text.encode('utf-8') if input_text is not None else None
        timeout = timeout_ms / 1000 if timeout_ms > 0 else None
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(input_bytes), timeout)
        except asyncio.TimeoutError:
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await process.wait()
            raise P4TimeoutError(f'Command timeout after {timeout_ms}ms')

        exit_code = process.returncode if process.returncode is not None else -1
        return (
            stdout.decode('utf-8', errors='replace'),
            stderr.decode('utf-8', errors='replace'),
            exit_code,
        )
