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


"""Changelist tools: create, update, submit, shelve and inspect changelists."""

import os
from awslabs.perforce_mcp_server.models import P4RunResult
from awslabs.perforce_mcp_server.parsers import (
    parse_change_created,
    parse_change_submitted,
    parse_changes,
    parse_shelve,
    parse_spec_form,
    parse_unshelve,
)
from awslabs.perforce_mcp_server.tools.arguments import (
    ChangelistCreateArgs,
    ChangelistSubmitArgs,
    ChangelistUpdateArgs,
    ChangesArgs,
    DescribeArgs,
    P4Command,
    ShelveArgs,
    SubmitArgs,
    UnshelveArgs,
    changelist_spec,
)
from awslabs.perforce_mcp_server.tools.context import (
    MaxResults,
    OptionalFileList,
    ToolContext,
    WorkspacePath,
    invalid_args,
    unguarded,
)
from loguru import logger
from pydantic import Field, ValidationError
from typing import Annotated, Callable, Dict, List, Literal, Optional


ChangelistNumber = Annotated[str, Field(description='Changelist number')]
Description = Annotated[str, Field(description='Changelist description')]


def _form_files(form: Dict) -> List[str]:
    """Return the file paths of a change form, without their action comments."""
    files = form.get('Files') or []
    if isinstance(files, str):
        files = [files]
    return [entry.split('#')[0].strip() for entry in files if entry.split('#')[0].strip()]


class ChangelistTools:
    """Tools working on pending and submitted changelists."""

    def __init__(self, context: ToolContext):
        """Initialize with the shared tool context."""
        self._context = context

    def register(self, mcp, guard: Callable = unguarded):
        """Register changelist tools with the MCP server."""
        tools = {
            'p4_changelist_create': self.p4_changelist_create,
            'p4_changelist_update': self.p4_changelist_update,
            'p4_changelist_submit': self.p4_changelist_submit,
            'p4_submit': self.p4_submit,
            'p4_describe': self.p4_describe,
            'p4_changes': self.p4_changes,
            'p4_shelve': self.p4_shelve,
            'p4_unshelve': self.p4_unshelve,
        }
        for name, func in tools.items():
            mcp.tool(name=name)(guard(name, func))

    async def p4_changelist_create(
        self,
        description: Description,
        files: OptionalFileList = None,
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """Create a pending changelist.

        Files listed must already be opened in the default changelist; they are
        moved into the new changelist.
        """

        def created(output: str) -> Dict:
            return {
                'changelist': parse_change_created(output),
                'description': description,
                'message': output,
            }

        return await self._context.call(
            ChangelistCreateArgs,
            created,
            description=description,
            files=files,
            workspace_path=workspace_path,
        )

    async def p4_changelist_update(
        self,
        changelist: ChangelistNumber,
        description: Annotated[
            Optional[str], Field(description='New description; kept when omitted')
        ] = None,
        files: Annotated[
            Optional[List[str]], Field(description='Files the changelist should hold')
        ] = None,
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """Update the description or file list of a pending changelist.

        The current form is read first so that fields not given are preserved.
        """
        try:
            request = ChangelistUpdateArgs(
                changelist=changelist,
                description=description,
                files=files,
                workspace_path=workspace_path,
            )
        except ValidationError as e:
            return invalid_args(ChangelistUpdateArgs.operation, e)

        refused = self._context.check_policy(request)
        if refused is not None:
            return refused

        setup = await self._context.config.setup_for_command(request.workspace_path)
        current = await self._context.run_command(
            P4Command(name='change', args=['-o', request.changelist]),
            setup.cwd,
            setup.env,
            parse_spec_form,
        )
        if not current.ok:
            return current.with_config_path(setup.config_result.config_path)

        form = current.result
        new_description = request.description or form.get('Description') or ''
        spec = changelist_spec(
            new_description,
            request.files if request.files is not None else _form_files(form),
            changelist=request.changelist,
            user=form.get('User') or setup.env.get('P4USER') or os.environ.get('P4USER'),
            client=form.get('Client') or setup.env.get('P4CLIENT') or os.environ.get('P4CLIENT'),
        )
        logger.debug(f'Updating changelist {request.changelist}')

        def updated(output: str) -> Dict:
            return {
                'changelist': int(request.changelist),
                'description': new_description,
                'message': output,
            }

        result = await self._context.run_command(
            P4Command(name='change', args=['-i'], input_text=spec),
            setup.cwd,
            setup.env,
            updated,
        )
        return result.with_config_path(setup.config_result.config_path)

    async def p4_changelist_submit(
        self,
        changelist: ChangelistNumber,
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """Submit a pending changelist."""

        def submitted(output: str) -> Dict:
            return {'changelist': parse_change_submitted(output), 'message': output}

        return await self._context.call(
            ChangelistSubmitArgs, submitted, changelist=changelist, workspace_path=workspace_path
        )

    async def p4_submit(
        self,
        description: Description,
        files: OptionalFileList = None,
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """Submit the default changelist with a description."""

        def submitted(output: str) -> Dict:
            return {
                'changelist': parse_change_submitted(output),
                'description': description,
                'message': output,
            }

        return await self._context.call(
            SubmitArgs,
            submitted,
            description=description,
            files=files,
            workspace_path=workspace_path,
        )

    async def p4_describe(
        self,
        changelist: ChangelistNumber,
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """Describe a changelist: its metadata and the files it affects."""
        return await self._context.call(
            DescribeArgs, changelist=changelist, workspace_path=workspace_path
        )

    async def p4_changes(
        self,
        status: Annotated[
            Optional[Literal['submitted', 'pending', 'shelved']],
            Field(description='Only changelists with this status'),
        ] = None,
        user: Annotated[Optional[str], Field(description='Only changelists of this user')] = None,
        client: Annotated[
            Optional[str], Field(description='Only changelists of this client')
        ] = None,
        max: MaxResults = None,
        filespec: Annotated[
            Optional[str], Field(description='Only changelists affecting these files')
        ] = None,
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """List changelists, newest first."""
        return await self._context.call(
            ChangesArgs,
            parse_changes,
            status=status,
            user=user,
            client=client,
            max=max,
            filespec=filespec,
            workspace_path=workspace_path,
        )

    async def p4_shelve(
        self,
        changelist: ChangelistNumber,
        files: OptionalFileList = None,
        delete: Annotated[bool, Field(description='Delete the shelved files instead')] = False,
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """Shelve files of a pending changelist on the server."""
        return await self._context.call(
            ShelveArgs,
            parse_shelve,
            changelist=changelist,
            files=files,
            delete=delete,
            workspace_path=workspace_path,
        )

    async def p4_unshelve(
        self,
        changelist: Annotated[str, Field(description='Shelved changelist number')],
        files: OptionalFileList = None,
        force: Annotated[bool, Field(description='Overwrite writable files')] = False,
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """Restore shelved files into the workspace."""
        return await self._context.call(
            UnshelveArgs,
            parse_unshelve,
            changelist=changelist,
            files=files,
            force=force,
            workspace_path=workspace_path,
        )
