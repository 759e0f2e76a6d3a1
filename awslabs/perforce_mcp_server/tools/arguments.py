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


"""Validated request records, one per tool operation.

Each record is validated once when it is built and turns itself into the P4Command
the runner executes. Records that modify the workspace set `writes`, and the ones
that delete files also set `deletes`, so policy checks are applied uniformly.
"""

import re
from awslabs.perforce_mcp_server.consts import (
    MAX_DESCRIPTION_LENGTH,
    MAX_FILES,
    MAX_PATH_LENGTH,
    AuditOutcome,
    InputKind,
    OutputFormat,
)
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from typing import ClassVar, Dict, List, Literal, Optional


RESOLVE_STRATEGY_FLAGS = {
    'accept-theirs': '-at',
    'accept-yours': '-ay',
    'merge': '-am',
    'edit': '-ae',
    'skip': '-as',
}
ResolveStrategy = Literal['accept-theirs', 'accept-yours', 'merge', 'edit', 'skip']

_DRIVE_LETTER = re.compile(r'^[A-Za-z]:')


class P4Command(BaseModel):
    """A fully validated p4 invocation."""

    name: str
    args: List[str] = []
    output_format: OutputFormat = OutputFormat.TEXT
    input_text: Optional[str] = None


def format_validation_error(error: ValidationError) -> str:
    """Render pydantic validation errors as one readable line."""
    messages = []
    for item in error.errors():
        field = '.'.join(str(part) for part in item['loc']) or 'arguments'
        message = item['msg'].removeprefix('Value error, ')
        messages.append(f'Invalid {field}: {message}')
    return '; '.join(messages)


def validate_files(files: List[str]) -> List[str]:
    """Check the size of a file list and of each entry."""
    if len(files) == 0:
        raise ValueError('files array cannot be empty')
    if len(files) > MAX_FILES:
        raise ValueError(f'too many files (maximum {MAX_FILES})')
    for file in files:
        if len(file) == 0:
            raise ValueError('file paths cannot be empty')
        if len(file) > MAX_PATH_LENGTH:
            raise ValueError(f'file path too long (maximum {MAX_PATH_LENGTH} characters)')
    return files


def validate_changelist(changelist: str) -> str:
    """Check that a changelist is a positive decimal number."""
    if not changelist.isdigit() or not changelist.isascii():
        raise ValueError('changelist must be a valid number')
    if int(changelist) <= 0:
        raise ValueError('changelist number out of valid range')
    return changelist


def validate_description(description: str) -> str:
    """Check that a description is non-blank and within the p4 limit."""
    if description.strip() == '':
        raise ValueError('description must not be empty')
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValueError(f'description too long (maximum {MAX_DESCRIPTION_LENGTH} characters)')
    return description


def _with_changelist(changelist: Optional[str]) -> List[str]:
    return ['-c', changelist] if changelist else []


def _with_max(flag_value: Optional[int]) -> List[str]:
    return ['-m', str(flag_value)] if flag_value else []


class ToolArgs(BaseModel):
    """Base record shared by every operation."""

    model_config = ConfigDict(extra='forbid')

    operation: ClassVar[str] = ''
    writes: ClassVar[bool] = False
    deletes: ClassVar[bool] = False
    sanitized_fields: ClassVar[Dict[str, InputKind]] = {}

    workspace_path: Optional[str] = None

    @field_validator('workspace_path')
    @classmethod
    def check_workspace_path(cls, value: Optional[str]) -> Optional[str]:
        """Limit the workspace path length."""
        if value is not None and len(value) > MAX_PATH_LENGTH:
            raise ValueError('workspace_path too long')
        return value

    def to_command(self, env: Dict[str, str]) -> P4Command:
        """Build the p4 invocation for this request."""
        raise NotImplementedError(f'{type(self).__name__} does not map to a single command')


class FileListArgs(ToolArgs):
    """Request carrying a required file list and an optional changelist."""

    files: List[str]
    changelist: Optional[str] = None

    @field_validator('files')
    @classmethod
    def check_files(cls, value: List[str]) -> List[str]:
        """Validate the file list."""
        return validate_files(value)

    @field_validator('changelist')
    @classmethod
    def check_changelist(cls, value: Optional[str]) -> Optional[str]:
        """Validate the changelist number."""
        return validate_changelist(value) if value is not None else value

    def to_command(self, env: Dict[str, str]) -> P4Command:
        """Run the operation on the files, optionally inside a changelist."""
        return P4Command(
            name=self.operation, args=[*_with_changelist(self.changelist), *self.files]
        )


class InfoArgs(ToolArgs):
    """Arguments of p4_info."""

    operation: ClassVar[str] = 'info'

    def to_command(self, env: Dict[str, str]) -> P4Command:
        """Run `p4 info`."""
        return P4Command(name='info')


class StatusArgs(ToolArgs):
    """Arguments of p4_status."""

    operation: ClassVar[str] = 'status'


class AddArgs(FileListArgs):
    """Arguments of p4_add. Files must be relative workspace paths."""

    operation: ClassVar[str] = 'add'
    writes: ClassVar[bool] = True

    @field_validator('files')
    @classmethod
    def check_relative(cls, value: List[str]) -> List[str]:
        """Reject traversal and absolute paths."""
        for file in value:
            if '..' in file or file.startswith('/') or _DRIVE_LETTER.match(file):
                raise ValueError('invalid file path')
        return value


class EditArgs(FileListArgs):
    """Arguments of p4_edit."""

    operation: ClassVar[str] = 'edit'
    writes: ClassVar[bool] = True


class DeleteArgs(FileListArgs):
    """Arguments of p4_delete."""

    operation: ClassVar[str] = 'delete'
    writes: ClassVar[bool] = True
    deletes: ClassVar[bool] = True


class RevertArgs(ToolArgs):
    """Arguments of p4_revert. Without files the whole workspace is reverted."""

    operation: ClassVar[str] = 'revert'
    writes: ClassVar[bool] = True

    files: Optional[List[str]] = None
    changelist: Optional[str] = None

    @field_validator('files')
    @classmethod
    def check_files(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        """Validate a non-empty file list."""
        return validate_files(value) if value else value

    @field_validator('changelist')
    @classmethod
    def check_changelist(cls, value: Optional[str]) -> Optional[str]:
        """Validate the changelist number."""
        return validate_changelist(value) if value is not None else value

    def to_command(self, env: Dict[str, str]) -> P4Command:
        """Run `p4 revert`."""
        return P4Command(
            name='revert', args=[*_with_changelist(self.changelist), *(self.files or ['...'])]
        )


class SyncArgs(ToolArgs):
    """Arguments of p4_sync."""

    operation: ClassVar[str] = 'sync'

    filespec: Optional[str] = None
    force: bool = False
    preview: bool = False

    def to_command(self, env: Dict[str, str]) -> P4Command:
        """Run `p4 sync`."""
        args = []
        if self.force:
            args.append('-f')
        if self.preview:
            args.append('-n')
        if self.filespec:
            args.append(self.filespec)
        return P4Command(name='sync', args=args)


class OpenedArgs(ToolArgs):
    """Arguments of p4_opened."""

    operation: ClassVar[str] = 'opened'

    changelist: Optional[str] = None

    @field_validator('changelist')
    @classmethod
    def check_changelist(cls, value: Optional[str]) -> Optional[str]:
        """Validate the changelist number, which may also be 'default'."""
        if value is None or value == 'default':
            return value
        return validate_changelist(value)

    def to_command(self, env: Dict[str, str]) -> P4Command:
        """Run `p4 opened`."""
        return P4Command(name='opened', args=_with_changelist(self.changelist))


class DiffArgs(ToolArgs):
    """Arguments of p4_diff."""

    operation: ClassVar[str] = 'diff'

    files: Optional[List[str]] = None
    summary: bool = False

    @field_validator('files')
    @classmethod
    def check_files(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        """Validate a non-empty file list."""
        return validate_files(value) if value else value

    def to_command(self, env: Dict[str, str]) -> P4Command:
        """Run `p4 diff` in unified or summary form."""
        return P4Command(name='diff', args=['-ds' if self.summary else '-du', *(self.files or [])])


class ResolveArgs(ToolArgs):
    """Arguments of p4_resolve."""

    operation: ClassVar[str] = 'resolve'
    writes: ClassVar[bool] = True

    files: Optional[List[str]] = None
    changelist: Optional[str] = None
    strategy: Optional[ResolveStrategy] = None

    @field_validator('files')
    @classmethod
    def check_files(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        """Validate a non-empty file list."""
        return validate_files(value) if value else value

    @field_validator('changelist')
    @classmethod
    def check_changelist(cls, value: Optional[str]) -> Optional[str]:
        """Validate the changelist number."""
        return validate_changelist(value) if value is not None else value

    def to_command(self, env: Dict[str, str]) -> P4Command:
        """Run `p4 resolve` with the flag matching the strategy."""
        args = _with_changelist(self.changelist)
        if self.strategy:
            args.append(RESOLVE_STRATEGY_FLAGS[self.strategy])
        args.extend(self.files or [])
        return P4Command(name='resolve', args=args)


class ShelveArgs(ToolArgs):
    """Arguments of p4_shelve."""

    operation: ClassVar[str] = 'shelve'
    writes: ClassVar[bool] = True

    changelist: str
    files: Optional[List[str]] = None
    delete: bool = False

    @field_validator('changelist')
    @classmethod
    def check_changelist(cls, value: str) -> str:
        """Validate the changelist number."""
        return validate_changelist(value)

    @field_validator('files')
    @classmethod
    def check_files(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        """Validate a non-empty file list."""
        return validate_files(value) if value else value

    def to_command(self, env: Dict[str, str]) -> P4Command:
        """Run `p4 shelve`, or delete the shelved files with -d."""
        args = ['-c', self.changelist]
        if self.delete:
            args.append('-d')
        args.extend(self.files or [])
        return P4Command(name='shelve', args=args)


class UnshelveArgs(ToolArgs):
    """Arguments of p4_unshelve."""

    operation: ClassVar[str] = 'unshelve'
    writes: ClassVar[bool] = True

    changelist: str
    files: Optional[List[str]] = None
    force: bool = False

    @field_validator('changelist')
    @classmethod
    def check_changelist(cls, value: str) -> str:
        """Validate the changelist number."""
        return validate_changelist(value)

    @field_validator('files')
    @classmethod
    def check_files(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        """Validate a non-empty file list."""
        return validate_files(value) if value else value

    def to_command(self, env: Dict[str, str]) -> P4Command:
        """Run `p4 unshelve` from the shelved changelist."""
        args = ['-s', self.changelist]
        if self.force:
            args.append('-f')
        args.extend(self.files or [])
        return P4Command(name='unshelve', args=args)


def changelist_spec(
    description: str,
    files: Optional[List[str]] = None,
    changelist: Optional[str] = None,
    user: Optional[str] = None,
    client: Optional[str] = None,
) -> str:
    """Render the change form fed to `p4 change -i`."""
    lines = [
        '# A Perforce Change Specification.',
        '',
        f'Change:\t{changelist or "new"}',
        '',
        f'Client:\t{client or "unknown"}',
        '',
        f'User:\t{user or "unknown"}',
        '',
        'Status:\t' + ('pending' if changelist else 'new'),
        '',
        'Description:',
        *(f'\t{line}' for line in description.split('\n')),
        '',
        'Files:',
        *(f'\t{file}' for file in files or []),
    ]
    return '\n'.join(lines) + '\n'


def submit_spec(description: str, files: Optional[List[str]] = None) -> str:
    """Render the form fed to `p4 submit -i` for the default changelist."""
    lines = [
        '# A Perforce Submit Specification.',
        '',
        'Change:\tnew',
        '',
        'Description:',
        *(f'\t{line}' for line in description.split('\n')),
        '',
        'Files:',
        *(f'\t{file}' for file in files or []),
    ]
    return '\n'.join(lines) + '\n'


class ChangelistCreateArgs(ToolArgs):
    """Arguments of p4_changelist_create."""

    operation: ClassVar[str] = 'change'
    writes: ClassVar[bool] = True

    description: str
    files: Optional[List[str]] = None

    @field_validator('description')
    @classmethod
    def check_description(cls, value: str) -> str:
        """Validate the description."""
        return validate_description(value)

    @field_validator('files')
    @classmethod
    def check_files(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        """Validate a non-empty file list."""
        return validate_files(value) if value else value

    def to_command(self, env: Dict[str, str]) -> P4Command:
        """Feed a new change form to `p4 change -i`."""
        spec = changelist_spec(
            self.description, self.files, user=env.get('P4USER'), client=env.get('P4CLIENT')
        )
        return P4Command(name='change', args=['-i'], input_text=spec)


class ChangelistUpdateArgs(ToolArgs):
    """Arguments of p4_changelist_update."""

    operation: ClassVar[str] = 'change'
    writes: ClassVar[bool] = True

    changelist: str
    description: Optional[str] = None
    files: Optional[List[str]] = None

    @field_validator('changelist')
    @classmethod
    def check_changelist(cls, value: str) -> str:
        """Validate the changelist number."""
        return validate_changelist(value)

    @field_validator('description')
    @classmethod
    def check_description(cls, value: Optional[str]) -> Optional[str]:
        """Validate the description when one is given."""
        return validate_description(value) if value is not None else value

    @field_validator('files')
    @classmethod
    def check_files(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        """Validate a non-empty file list."""
        return validate_files(value) if value else value


class ChangelistSubmitArgs(ToolArgs):
    """Arguments of p4_changelist_submit."""

    operation: ClassVar[str] = 'submit'
    writes: ClassVar[bool] = True

    changelist: str

    @field_validator('changelist')
    @classmethod
    def check_changelist(cls, value: str) -> str:
        """Validate the changelist number."""
        return validate_changelist(value)

    def to_command(self, env: Dict[str, str]) -> P4Command:
        """Run `p4 submit -c`."""
        return P4Command(name='submit', args=['-c', self.changelist])


class SubmitArgs(ToolArgs):
    """Arguments of p4_submit."""

    operation: ClassVar[str] = 'submit'
    writes: ClassVar[bool] = True

    description: str
    files: Optional[List[str]] = None

    @field_validator('description')
    @classmethod
    def check_description(cls, value: str) -> str:
        """Validate the description."""
        return validate_description(value)

    @field_validator('files')
    @classmethod
    def check_files(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        """Validate a non-empty file list."""
        return validate_files(value) if value else value

    def to_command(self, env: Dict[str, str]) -> P4Command:
        """Feed a submit form for the default changelist to `p4 submit -i`."""
        return P4Command(
            name='submit', args=['-i'], input_text=submit_spec(self.description, self.files)
        )


class DescribeArgs(ToolArgs):
    """Arguments of p4_describe."""

    operation: ClassVar[str] = 'describe'

    changelist: str

    @field_validator('changelist')
    @classmethod
    def check_changelist(cls, value: str) -> str:
        """Validate the changelist number."""
        return validate_changelist(value)

    def to_command(self, env: Dict[str, str]) -> P4Command:
        """Run tagged `p4 describe -s`."""
        return P4Command(
            name='describe', args=['-s', self.changelist], output_format=OutputFormat.TAGGED
        )


class ChangesArgs(ToolArgs):
    """Arguments of p4_changes."""

    operation: ClassVar[str] = 'changes'

    status: Optional[Literal['submitted', 'pending', 'shelved']] = None
    user: Optional[str] = None
    client: Optional[str] = None
    max: Optional[int] = None
    filespec: Optional[str] = None

    @field_validator('max')
    @classmethod
    def check_max(cls, value: Optional[int]) -> Optional[int]:
        """Require a positive limit."""
        if value is not None and value <= 0:
            raise ValueError('max must be a positive integer')
        return value

    def to_command(self, env: Dict[str, str]) -> P4Command:
        """Run `p4 changes` with the given filters."""
        args = []
        if self.status:
            args.extend(['-s', self.status])
        if self.user:
            args.extend(['-u', self.user])
        if self.client:
            args.extend(['-c', self.client])
        args.extend(_with_max(self.max))
        if self.filespec:
            args.append(self.filespec)
        return P4Command(name='changes', args=args)


class FilelogArgs(ToolArgs):
    """Arguments of p4_filelog."""

    operation: ClassVar[str] = 'filelog'

    filespec: str
    max_revisions: Optional[int] = None

    @field_validator('filespec')
    @classmethod
    def check_filespec(cls, value: str) -> str:
        """Require a filespec."""
        if not value:
            raise ValueError('filespec parameter is required')
        return value

    def to_command(self, env: Dict[str, str]) -> P4Command:
        """Run `p4 filelog`."""
        limit = self.max_revisions if self.max_revisions and self.max_revisions > 0 else None
        args = _with_max(limit)
        return P4Command(name='filelog', args=[*args, self.filespec])


class BlameArgs(ToolArgs):
    """Arguments of p4_blame."""

    operation: ClassVar[str] = 'annotate'

    file: str

    @field_validator('file')
    @classmethod
    def check_file(cls, value: str) -> str:
        """Require a file."""
        if not value:
            raise ValueError('file parameter is required')
        return value

    def to_command(self, env: Dict[str, str]) -> P4Command:
        """Run `p4 annotate -a`."""
        return P4Command(name='annotate', args=['-a', self.file])


class CopyArgs(ToolArgs):
    """Arguments of p4_copy."""

    operation: ClassVar[str] = 'copy'
    writes: ClassVar[bool] = True
    sanitized_fields: ClassVar[Dict[str, InputKind]] = {
        'source': InputKind.FILESPEC,
        'destination': InputKind.FILESPEC,
    }

    source: str
    destination: str
    changelist: Optional[str] = None

    @field_validator('source', 'destination')
    @classmethod
    def check_path(cls, value: str) -> str:
        """Require both ends of the copy."""
        if not value:
            raise ValueError('source and destination parameters are required')
        return value

    @field_validator('changelist')
    @classmethod
    def check_changelist(cls, value: Optional[str]) -> Optional[str]:
        """Validate the changelist number."""
        return validate_changelist(value) if value is not None else value

    def to_command(self, env: Dict[str, str]) -> P4Command:
        """Run the operation from source to destination."""
        return P4Command(
            name=self.operation,
            args=[*_with_changelist(self.changelist), self.source, self.destination],
        )


class MoveArgs(CopyArgs):
    """Arguments of p4_move."""

    operation: ClassVar[str] = 'move'


class GrepArgs(ToolArgs):
    """Arguments of p4_grep."""

    operation: ClassVar[str] = 'grep'
    sanitized_fields: ClassVar[Dict[str, InputKind]] = {
        'pattern': InputKind.PATTERN,
        'filespec': InputKind.FILESPEC,
    }

    pattern: str
    filespec: Optional[str] = None
    case_insensitive: bool = False

    @field_validator('pattern')
    @classmethod
    def check_pattern(cls, value: str) -> str:
        """Require a pattern."""
        if not value:
            raise ValueError('pattern parameter is required')
        return value

    def to_command(self, env: Dict[str, str]) -> P4Command:
        """Run `p4 grep -n` over the filespec, the whole client by default."""
        args = ['-i'] if self.case_insensitive else []
        args.extend(['-n', '-e', self.pattern, self.filespec or '...'])
        return P4Command(name='grep', args=args)


class FilesArgs(ToolArgs):
    """Arguments of p4_files."""

    operation: ClassVar[str] = 'files'
    sanitized_fields: ClassVar[Dict[str, InputKind]] = {'filespec': InputKind.FILESPEC}

    filespec: Optional[str] = None
    max: Optional[int] = None

    @field_validator('max')
    @classmethod
    def check_max(cls, value: Optional[int]) -> Optional[int]:
        """Require a positive limit."""
        if value is not None and value <= 0:
            raise ValueError('max must be a positive integer')
        return value

    def to_command(self, env: Dict[str, str]) -> P4Command:
        """Run `p4 files`."""
        return P4Command(name='files', args=[*_with_max(self.max), self.filespec or '...'])


class DirsArgs(ToolArgs):
    """Arguments of p4_dirs."""

    operation: ClassVar[str] = 'dirs'
    sanitized_fields: ClassVar[Dict[str, InputKind]] = {'filespec': InputKind.FILESPEC}

    filespec: Optional[str] = None

    def to_command(self, env: Dict[str, str]) -> P4Command:
        """Run `p4 dirs`."""
        return P4Command(name='dirs', args=[self.filespec or '*'])


class SizesArgs(ToolArgs):
    """Arguments of p4_sizes."""

    operation: ClassVar[str] = 'sizes'

    filespec: Optional[str] = None

    def to_command(self, env: Dict[str, str]) -> P4Command:
        """Run `p4 sizes -s`."""
        return P4Command(name='sizes', args=['-s', self.filespec or '...'])


class HaveArgs(ToolArgs):
    """Arguments of p4_have."""

    operation: ClassVar[str] = 'have'

    filespec: Optional[str] = None

    def to_command(self, env: Dict[str, str]) -> P4Command:
        """Run `p4 have`."""
        return P4Command(name='have', args=[self.filespec] if self.filespec else [])


class WhereArgs(ToolArgs):
    """Arguments of p4_where."""

    operation: ClassVar[str] = 'where'

    files: List[str]

    @field_validator('files')
    @classmethod
    def check_files(cls, value: List[str]) -> List[str]:
        """Validate the file list."""
        return validate_files(value)

    def to_command(self, env: Dict[str, str]) -> P4Command:
        """Run `p4 where`."""
        return P4Command(name='where', args=list(self.files))


class UsersArgs(ToolArgs):
    """Arguments of p4_users."""

    operation: ClassVar[str] = 'users'

    user: Optional[str] = None
    max: Optional[int] = None

    def to_command(self, env: Dict[str, str]) -> P4Command:
        """Run `p4 users`."""
        args = _with_max(self.max)
        if self.user:
            args.append(self.user)
        return P4Command(name='users', args=args)


class SpecFormArgs(ToolArgs):
    """Request for a single spec form printed with `-o`."""

    name: Optional[str] = None

    def to_command(self, env: Dict[str, str]) -> P4Command:
        """Run `p4 <spec> -o [name]`."""
        return P4Command(name=self.operation, args=['-o', *([self.name] if self.name else [])])


class UserArgs(SpecFormArgs):
    """Arguments of p4_user."""

    operation: ClassVar[str] = 'user'


class ClientArgs(SpecFormArgs):
    """Arguments of p4_client."""

    operation: ClassVar[str] = 'client'


class JobArgs(SpecFormArgs):
    """Arguments of p4_job. A job name is required."""

    operation: ClassVar[str] = 'job'

    name: str

    @field_validator('name')
    @classmethod
    def check_name(cls, value: str) -> str:
        """Require a job name."""
        if not value:
            raise ValueError('job parameter is required')
        return value


class LabelArgs(SpecFormArgs):
    """Arguments of p4_label. A label name is required."""

    operation: ClassVar[str] = 'label'

    name: str

    @field_validator('name')
    @classmethod
    def check_name(cls, value: str) -> str:
        """Require a label name."""
        if not value:
            raise ValueError('label parameter is required')
        return value


class ClientsArgs(ToolArgs):
    """Arguments of p4_clients."""

    operation: ClassVar[str] = 'clients'

    user: Optional[str] = None
    max: Optional[int] = None

    def to_command(self, env: Dict[str, str]) -> P4Command:
        """Run `p4 clients`."""
        args = ['-u', self.user] if self.user else []
        args.extend(_with_max(self.max))
        return P4Command(name='clients', args=args)


class JobsArgs(ToolArgs):
    """Arguments of p4_jobs."""

    operation: ClassVar[str] = 'jobs'

    job: Optional[str] = None
    max: Optional[int] = None

    def to_command(self, env: Dict[str, str]) -> P4Command:
        """Run `p4 jobs`."""
        args = _with_max(self.max)
        if self.job:
            args.extend(['-e', f'Job={self.job}'])
        return P4Command(name='jobs', args=args)


class FixesArgs(ToolArgs):
    """Arguments of p4_fixes."""

    operation: ClassVar[str] = 'fixes'

    job: Optional[str] = None
    changelist: Optional[str] = None

    @field_validator('changelist')
    @classmethod
    def check_changelist(cls, value: Optional[str]) -> Optional[str]:
        """Validate the changelist number."""
        return validate_changelist(value) if value is not None else value

    def to_command(self, env: Dict[str, str]) -> P4Command:
        """Run `p4 fixes`."""
        args = ['-j', self.job] if self.job else []
        args.extend(_with_changelist(self.changelist))
        return P4Command(name='fixes', args=args)


class LabelsArgs(ToolArgs):
    """Arguments of p4_labels."""

    operation: ClassVar[str] = 'labels'

    label: Optional[str] = None
    user: Optional[str] = None
    max: Optional[int] = None

    def to_command(self, env: Dict[str, str]) -> P4Command:
        """Run `p4 labels`."""
        args = ['-u', self.user] if self.user else []
        args.extend(_with_max(self.max))
        if self.label:
            args.extend(['-e', self.label])
        return P4Command(name='labels', args=args)


class ConfigDetectArgs(ToolArgs):
    """Arguments of p4_config_detect."""

    operation: ClassVar[str] = 'config.detect'


class AuditArgs(ToolArgs):
    """Arguments of p4_audit."""

    operation: ClassVar[str] = 'audit'

    tool: Optional[str] = None
    user: Optional[str] = None
    result: Optional[AuditOutcome] = None
    since: Optional[datetime] = None
    format: Literal['json', 'csv'] = 'json'

    @field_validator('since')
    @classmethod
    def assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        """Treat a timestamp without offset as UTC."""
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class ComplianceArgs(ToolArgs):
    """Arguments of p4_compliance."""

    operation: ClassVar[str] = 'compliance'
