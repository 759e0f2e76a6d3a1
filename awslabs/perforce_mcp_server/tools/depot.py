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


"""Depot and server metadata tools."""

from awslabs.perforce_mcp_server.models import P4RunResult
from awslabs.perforce_mcp_server.parsers import (
    parse_clients,
    parse_dirs,
    parse_filelog,
    parse_files,
    parse_fixes,
    parse_grep,
    parse_info,
    parse_jobs,
    parse_labels,
    parse_sizes,
    parse_spec_form,
    parse_users,
)
from awslabs.perforce_mcp_server.tools.arguments import (
    ClientArgs,
    ClientsArgs,
    DirsArgs,
    FilelogArgs,
    FilesArgs,
    FixesArgs,
    GrepArgs,
    InfoArgs,
    JobArgs,
    JobsArgs,
    LabelArgs,
    LabelsArgs,
    SizesArgs,
    UserArgs,
    UsersArgs,
)
from awslabs.perforce_mcp_server.tools.context import (
    Changelist,
    MaxResults,
    ToolContext,
    WorkspacePath,
    unguarded,
)
from pydantic import Field
from typing import Annotated, Callable, Optional


Filespec = Annotated[
    Optional[str], Field(description='Depot or local filespec; the whole client when omitted')
]


class DepotTools:
    """Read-only tools querying the depot and the server."""

    def __init__(self, context: ToolContext):
        """Initialize with the shared tool context."""
        self._context = context

    def register(self, mcp, guard: Callable = unguarded):
        """Register depot tools with the MCP server."""
        tools = {
            'p4_info': self.p4_info,
            'p4_files': self.p4_files,
            'p4_dirs': self.p4_dirs,
            'p4_sizes': self.p4_sizes,
            'p4_grep': self.p4_grep,
            'p4_filelog': self.p4_filelog,
            'p4_users': self.p4_users,
            'p4_user': self.p4_user,
            'p4_clients': self.p4_clients,
            'p4_client': self.p4_client,
            'p4_jobs': self.p4_jobs,
            'p4_job': self.p4_job,
            'p4_fixes': self.p4_fixes,
            'p4_labels': self.p4_labels,
            'p4_label': self.p4_label,
        }
        for name, func in tools.items():
            mcp.tool(name=name)(guard(name, func))

    async def p4_info(self, workspace_path: WorkspacePath = None) -> P4RunResult:
        """Show client and server information.

        Useful as a first call to check that the connection settings work.
        """
        return await self._context.call(InfoArgs, parse_info, workspace_path=workspace_path)

    async def p4_files(
        self,
        filespec: Filespec = None,
        max: MaxResults = None,
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """List depot files with their head revision, action and type."""
        return await self._context.call(
            FilesArgs, parse_files, filespec=filespec, max=max, workspace_path=workspace_path
        )

    async def p4_dirs(
        self,
        filespec: Annotated[
            Optional[str], Field(description='Directory pattern, e.g. //depot/*')
        ] = None,
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """List depot subdirectories."""
        return await self._context.call(
            DirsArgs, parse_dirs, filespec=filespec, workspace_path=workspace_path
        )

    async def p4_sizes(
        self,
        filespec: Filespec = None,
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """Sum the file count and size of depot files."""
        return await self._context.call(
            SizesArgs, parse_sizes, filespec=filespec, workspace_path=workspace_path
        )

    async def p4_grep(
        self,
        pattern: Annotated[str, Field(description='Regular expression to search for')],
        filespec: Filespec = None,
        case_insensitive: Annotated[bool, Field(description='Ignore case')] = False,
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """Search depot file contents for a pattern."""
        return await self._context.call(
            GrepArgs,
            parse_grep,
            pattern=pattern,
            filespec=filespec,
            case_insensitive=case_insensitive,
            workspace_path=workspace_path,
        )

    async def p4_filelog(
        self,
        filespec: Annotated[str, Field(description='File to show the history of')],
        max_revisions: Annotated[
            Optional[int], Field(description='Maximum number of revisions')
        ] = None,
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """Show the revision history of files, including integration records."""
        return await self._context.call(
            FilelogArgs,
            parse_filelog,
            filespec=filespec,
            max_revisions=max_revisions,
            workspace_path=workspace_path,
        )

    async def p4_users(
        self,
        user: Annotated[Optional[str], Field(description='User name or pattern')] = None,
        max: MaxResults = None,
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """List users."""
        return await self._context.call(
            UsersArgs, parse_users, user=user, max=max, workspace_path=workspace_path
        )

    async def p4_user(
        self,
        user: Annotated[
            Optional[str], Field(description='User name; the current user when omitted')
        ] = None,
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """Show the spec of a user."""
        return await self._context.call(
            UserArgs, parse_spec_form, name=user, workspace_path=workspace_path
        )

    async def p4_clients(
        self,
        user: Annotated[
            Optional[str], Field(description='Only clients owned by this user')
        ] = None,
        max: MaxResults = None,
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """List client workspaces."""
        return await self._context.call(
            ClientsArgs, parse_clients, user=user, max=max, workspace_path=workspace_path
        )

    async def p4_client(
        self,
        client: Annotated[
            Optional[str], Field(description='Client name; the current client when omitted')
        ] = None,
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """Show the spec of a client workspace, including its view."""
        return await self._context.call(
            ClientArgs, parse_spec_form, name=client, workspace_path=workspace_path
        )

    async def p4_jobs(
        self,
        job: Annotated[Optional[str], Field(description='Only jobs matching this name')] = None,
        max: MaxResults = None,
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """List jobs."""
        return await self._context.call(
            JobsArgs, parse_jobs, job=job, max=max, workspace_path=workspace_path
        )

    async def p4_job(
        self,
        job: Annotated[str, Field(description='Job name')],
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """Show the spec of a job."""
        return await self._context.call(
            JobArgs, parse_spec_form, name=job, workspace_path=workspace_path
        )

    async def p4_fixes(
        self,
        job: Annotated[Optional[str], Field(description='Only fixes of this job')] = None,
        changelist: Changelist = None,
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """List jobs fixed by changelists."""
        return await self._context.call(
            FixesArgs, parse_fixes, job=job, changelist=changelist, workspace_path=workspace_path
        )

    async def p4_labels(
        self,
        label: Annotated[
            Optional[str], Field(description='Only labels matching this name')
        ] = None,
        user: Annotated[
            Optional[str], Field(description='Only labels owned by this user')
        ] = None,
        max: MaxResults = None,
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """List labels."""
        return await self._context.call(
            LabelsArgs,
            parse_labels,
            label=label,
            user=user,
            max=max,
            workspace_path=workspace_path,
        )

    async def p4_label(
        self,
        label: Annotated[str, Field(description='Label name')],
        workspace_path: WorkspacePath = None,
    ) -> P4RunResult:
        """Show the spec of a label."""
        return await self._context.call(
            LabelArgs, parse_spec_form, name=label, workspace_path=workspace_path
        )
