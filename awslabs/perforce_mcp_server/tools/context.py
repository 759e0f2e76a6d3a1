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


"""Shared state and execution path for the Perforce tool handlers."""

import os
from awslabs.perforce_mcp_server.consts import (
    DELETE_DISABLED_MESSAGE,
    READONLY_MESSAGE,
    ErrorCode,
)
from awslabs.perforce_mcp_server.models import P4Error, P4RunResult, RunOptions, ServerConfig
from awslabs.perforce_mcp_server.p4config import P4ConfigResolver
from awslabs.perforce_mcp_server.runner import P4Runner
from awslabs.perforce_mcp_server.security import SecurityManager
from awslabs.perforce_mcp_server.tools.arguments import ToolArgs, format_validation_error
from loguru import logger
from pydantic import Field, ValidationError
from typing import Annotated, Any, Callable, List, Optional, Tuple, Type, Union


WorkspacePath = Annotated[
    Optional[str],
    Field(description='Directory inside the workspace; the .p4config search starts here'),
]
Changelist = Annotated[Optional[str], Field(description='Pending changelist number')]
FileList = Annotated[List[str], Field(description='Local or depot file paths')]
OptionalFileList = Annotated[
    Optional[List[str]], Field(description='Local or depot file paths; all files when omitted')
]
MaxResults = Annotated[Optional[int], Field(description='Maximum number of results')]


def unguarded(name: str, func: Callable) -> Callable:
    """Register a tool function as is."""
    return func


def rejection(operation: str, code: ErrorCode, message: str) -> P4RunResult:
    """Build the envelope for a call refused before any subprocess is spawned."""
    return P4RunResult(
        ok=False,
        command=operation,
        args=[],
        cwd=os.getcwd(),
        error=P4Error(code=code.value, message=message),
    )


def invalid_args(operation: str, error: Union[str, ValidationError]) -> P4RunResult:
    """Build a P4_INVALID_ARGS envelope from a message or a pydantic error."""
    message = format_validation_error(error) if isinstance(error, ValidationError) else error
    return rejection(operation, ErrorCode.INVALID_ARGS, message)


def readonly_result(operation: str) -> P4RunResult:
    """Envelope returned for write operations in read-only mode."""
    return rejection(operation, ErrorCode.READONLY_MODE, READONLY_MESSAGE)


def delete_disabled_result(operation: str) -> P4RunResult:
    """Envelope returned for delete operations while delete protection is on."""
    return rejection(operation, ErrorCode.DELETE_DISABLED, DELETE_DISABLED_MESSAGE)


def with_warnings(result: P4RunResult, warnings: List[str]) -> P4RunResult:
    """Append advisory warnings to a successful envelope."""
    if not warnings or not result.ok:
        return result
    return result.model_copy(update={'warnings': [*(result.warnings or []), *warnings]})


class ToolContext:
    """Services shared by every tool handler.

    Owns nothing global: tests build an isolated context per case.
    """

    def __init__(
        self,
        runner: Optional[P4Runner] = None,
        config: Optional[P4ConfigResolver] = None,
        server_config: Optional[ServerConfig] = None,
        security: Optional[SecurityManager] = None,
    ):
        """Initialize the context, reading defaults from the environment."""
        self.runner = runner or P4Runner()
        self.config = config or P4ConfigResolver()
        self.server_config = server_config or ServerConfig.from_env()
        self.security = security or SecurityManager()

    def check_policy(self, request: ToolArgs) -> Optional[P4RunResult]:
        """Apply the read-only and delete protections to a request."""
        if request.writes and self.server_config.readonly_mode:
            logger.info(f'Refusing {request.operation} in read-only mode')
            return readonly_result(request.operation)
        if request.deletes and self.server_config.disable_delete:
            logger.info(f'Refusing {request.operation} while delete is disabled')
            return delete_disabled_result(request.operation)
        return None

    def sanitize(self, request: ToolArgs) -> Tuple[ToolArgs, List[str], Optional[P4RunResult]]:
        """Screen the fields a request declares as user patterns or filespecs.

        Returns the request with sanitized values, the advisory warnings, and a
        rejection envelope when a value was found dangerous.
        """
        updates = {}
        advisories = []
        for field, kind in request.sanitized_fields.items():
            value = getattr(request, field)
            if not value:
                continue
            screened = self.security.sanitize_input(value, kind)
            if not screened.valid:
                return request, [], invalid_args(
                    request.operation, f'Invalid {field}: {", ".join(screened.warnings)}'
                )
            if screened.warnings:
                logger.warning(f'{request.operation} {field}: {"; ".join(screened.warnings)}')
                advisories.extend(screened.warnings)
            updates[field] = screened.sanitized
        return request.model_copy(update=updates), advisories, None

    async def execute(
        self,
        request: ToolArgs,
        parser: Optional[Callable[[str], Any]] = None,
    ) -> P4RunResult:
        """Run a validated request through the shared policy and execution path.

        Args:
            request: The validated request record
            parser: Grammar applied to the raw output of a successful run; when
                omitted the runner's generic parsing for the output format is used

        Returns:
            P4RunResult: The envelope with the parsed result and the config file used
        """
        request, advisories, rejected = self.sanitize(request)
        if rejected is not None:
            return rejected

        refused = self.check_policy(request)
        if refused is not None:
            return refused

        setup = await self.config.setup_for_command(request.workspace_path)
        command = request.to_command({**os.environ, **setup.env})
        result = await self.run_command(command, setup.cwd, setup.env, parser)
        return with_warnings(result, advisories).with_config_path(
            setup.config_result.config_path
        )

    async def run_command(self, command, cwd, env, parser=None) -> P4RunResult:
        """Run one P4Command and apply the parser to its raw output."""
        result = await self.runner.run(
            command.name,
            command.args,
            cwd,
            RunOptions(
                env=env,
                output_format=command.output_format,
                parse_output=parser is None,
                input_text=command.input_text,
            ),
        )
        if result.ok and parser is not None:
            return result.model_copy(update={'result': parser(result.result or '')})
        return result

    async def call(
        self,
        args_type: Type[ToolArgs],
        parser: Optional[Callable[[str], Any]] = None,
        **values: Any,
    ) -> P4RunResult:
        """Validate tool arguments into a request record and execute it."""
        try:
            request = args_type(**values)
        except ValidationError as e:
            return invalid_args(args_type.operation, e)
        return await self.execute(request, parser)
