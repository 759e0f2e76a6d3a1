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


"""Workspace file tools: open, revert, sync, inspect and resolve files."""

import os
from awslabs.perforce_mcp_server.models import P4RunResult
from awslabs.perforce_mcp_server.parsers import (
    parse_annotate,
    parse_changes,
    parse_copy,
    parse_diff,
    parse_have,
    parse_move,
    parse_opened,
    parse_resolve,
    parse_sync,
    parse_where,
)
from awslabs.perforce_mcp_server.tools.arguments import (
    AddArgs,
    BlameArgs,
    CopyArgs,
    DeleteArgs,
    DiffArgs,
    EditArgs,
    HaveArgs,
    MoveArgs,
    OpenedArgs,
    P4Command,
    ResolveArgs,
    ResolveStrategy,
    RevertArgs,
    StatusArgs,
    SyncArgs,
    WhereArgs,
)
from awslabs.perforce_mcp_server.tools.context import (
    Changelist,
    FileList,
    OptionalFileList,
    ToolContext,
    WorkspacePath,
    invalid_args,
    unguarded,
)
from collections import Counter
from pydantic import Field, ValidationError
from typing import Annotated, Callable, List, Optional


class FileTools:
    """Tools operating on files of the current workspace."""

    def __init__(self, context: ToolContext):
        """Initialize with the shared tool context."""
        self._context = context

    def register(self, mcp, guard: Callable = unguarded):
        """Register file tools with the MCP server."""
        tools = {
            'p4_status': self.p4_status,
            'p4_add': self.p4_add,
            'p4_edit': self.p4_edit,
            'p4_delete': self.p4_delete,
            'p4_revert': self.p4_revert,
            'p4_sync': self.p4_sync,
            'p4_opened': self.p4_opened,
            'p4_diff': self.p4_diff,
            'p4_resolve': self.p4_resolve,
            'p4_copy': self.p4_copy,
            'p4_move': self.p4_move,
            'p4_have': self.p4_have,
            'p4_where': self.p4_where,
            'p4_blame': self.p4_blame,
        }
        for name, func in tools.items():
            mcp.tool(name=name)(guard(name, func))

    async def p4_status(self, workspace_path: WorkspacePath = None) -> P4RunResult:
        """Summarize the workspace: opened files and pending changelists of the client.

        The call fails only when both underlying commands fail; a single failure is
        reported as a warning next to the part that succeeded.
        """
        try:
            request = StatusArgs(workspace_path=workspace_path)
        except ValidationError as e:
            return invalid_args(StatusArgs.operation, e)

        setup = await self._context.config.setup_for_command(request.workspace_path)
        client = setup.env.get('P4CLIENT') or os.environ.get('P4CLIENT')
        pending_args = ['-s', 'pending', *(['-c', client] if client else [])]

        opened = await self._context.run_command(
            P4Command(name='opened'), setup.cwd, setup.env, parse_opened
        )
        pending = await self._context.run_command(
            P4Command(name='changes', args=pending_args), setup.cwd, setup.env, parse_changes
        )

        if not opened.ok and not pending.ok:
            return opened.with_config_path(setup.config_result.config_path)

        opened_files = opened.result if opened.ok else []
        pending_changes = pending.result if pending.ok else []
        warnings = [*(opened.warnings or []), *(pending.warnings or [])]
        for name, part in (('opened', opened), ('changes', pending)):
            if part.error is not None:
                warnings.append(f'{name}: {part.error.message}')

        return P4RunResult(
            ok=True,
            command=StatusArgs.operation,
            args=[],
            cwd=setup.cwd,
            config_used={**(opened.config_used or pending.config_used)},
            result={
                'openedFiles': opened_files,
                'pendingChanges': pending_changes,
                'summary': {
                    'totalOpenedFiles': len(opened_files),
                    'totalPendingChanges': len(pending_changes),
                    'filesByAction': dict(Counter(f.get('action') for f in opened_files)),
                },
            },
            warnings=warnings or None,
        ).with_config_path(setup.config_result.config_path)

    async def p4_add(
        self,
        files: Annotated[List[str], Field(description='Workspace-relative paths of new files')],
        changelist: Changelist = None,
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """Open new files for add.

        Paths must be relative to the workspace; absolute paths and `..` are rejected.
        """
        return await self._context.call(
            AddArgs, str.strip, files=files, changelist=changelist, workspace_path=workspace_path
        )

    async def p4_edit(
        self,
        files: FileList,
        changelist: Changelist = None,
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """Open files for edit."""
        return await self._context.call(
            EditArgs, str.strip, files=files, changelist=changelist, workspace_path=workspace_path
        )

    async def p4_delete(
        self,
        files: FileList,
        changelist: Changelist = None,
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """Open files for delete. Requires both write and delete to be enabled."""
        return await self._context.call(
            DeleteArgs,
            str.strip,
            files=files,
            changelist=changelist,
            workspace_path=workspace_path,
        )

    async def p4_revert(
        self,
        files: OptionalFileList = None,
        changelist: Changelist = None,
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """Revert opened files, discarding local changes."""
        return await self._context.call(
            RevertArgs,
            str.strip,
            files=files,
            changelist=changelist,
            workspace_path=workspace_path,
        )

    async def p4_sync(
        self,
        filespec: Annotated[
            Optional[str], Field(description='Files to sync, e.g. //depot/main/...#head')
        ] = None,
        force: Annotated[bool, Field(description='Resync files already up to date')] = False,
        preview: Annotated[bool, Field(description='Show what would be synced')] = False,
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """Sync workspace files to the depot."""
        return await self._context.call(
            SyncArgs,
            parse_sync,
            filespec=filespec,
            force=force,
            preview=preview,
            workspace_path=workspace_path,
        )

    async def p4_opened(
        self,
        changelist: Annotated[
            Optional[str], Field(description="Changelist number or 'default'")
        ] = None,
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """List files opened in the workspace."""
        return await self._context.call(
            OpenedArgs, parse_opened, changelist=changelist, workspace_path=workspace_path
        )

    async def p4_diff(
        self,
        files: OptionalFileList = None,
        summary: Annotated[
            bool, Field(description='Report changed line counts instead of unified diffs')
        ] = False,
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """Diff opened files against their depot revisions."""
        return await self._context.call(
            DiffArgs, parse_diff, files=files, summary=summary, workspace_path=workspace_path
        )

    async def p4_resolve(
        self,
        files: OptionalFileList = None,
        changelist: Changelist = None,
        strategy: Annotated[
            Optional[ResolveStrategy],
            Field(description='accept-theirs, accept-yours, merge, edit or skip'),
        ] = None,
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """Resolve integrations and conflicts on opened files."""
        return await self._context.call(
            ResolveArgs,
            parse_resolve,
            files=files,
            changelist=changelist,
            strategy=strategy,
            workspace_path=workspace_path,
        )

    async def p4_copy(
        self,
        source: Annotated[str, Field(description='Source filespec')],
        destination: Annotated[str, Field(description='Target filespec')],
        changelist: Changelist = None,
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """Copy files from source to destination, opening the targets for integrate."""
        return await self._context.call(
            CopyArgs,
            parse_copy,
            source=source,
            destination=destination,
            changelist=changelist,
            workspace_path=workspace_path,
        )

    async def p4_move(
        self,
        source: Annotated[str, Field(description='File currently opened for edit')],
        destination: Annotated[str, Field(description='New location')],
        changelist: Changelist = None,
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """Move or rename a file opened for edit."""
        return await self._context.call(
            MoveArgs,
            parse_move,
            source=source,
            destination=destination,
            changelist=changelist,
            workspace_path=workspace_path,
        )

    async def p4_have(
        self,
        filespec: Annotated[Optional[str], Field(description='Files to check')] = None,
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """List the revisions synced into the workspace."""
        return await self._context.call(
            HaveArgs, parse_have, filespec=filespec, workspace_path=workspace_path
        )

    async def p4_where(
        self,
        files: FileList,
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """Show the depot, client and local path of files."""
        return await self._context.call(
            WhereArgs, parse_where, files=files, workspace_path=workspace_path
        )

    async def p4_blame(
        self,
        file: Annotated[str, Field(description='File to annotate')],
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """Show the revisions that introduced each line of a file."""
        return await self._context.call(
            BlameArgs, parse_annotate, file=file, workspace_path=workspace_path
        )
