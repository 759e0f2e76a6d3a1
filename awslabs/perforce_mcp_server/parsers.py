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


"""Parsers for p4 command output.

Every parser is a pure function over already collected text. Parsers never raise:
lines that do not match the expected shape are skipped and whatever could be
extracted is returned, possibly an empty list or mapping.

Record keys follow the names used by `p4 -ztag` where one exists (depotFile,
clientFile, change) so tagged and text output read the same way.
"""

import re
from typing import Any, Dict, List, Optional, Tuple, Union


ParsedRecord = Dict[str, Any]
Scalar = Union[str, int, float, bool]

_NUMERIC = re.compile(r'\d+(\.\d+)?')
_TRUE_VALUES = ('true', 'yes', 'on')
_FALSE_VALUES = ('false', 'no', 'off')

_SCRIPT_TAG = re.compile(r'^(info|text|warning|error)(\d*): ?(.*)$')
_WARNING_TAG = re.compile(r'^warning\d*: ?(.*)$')
_EXIT_LINE = re.compile(r'^exit: -?\d+$')
_TAGGED_LINE = re.compile(r'^\.\.\. (\w+)\s*(.*)$')

_OPENED_LINE = re.compile(
    r'^(?P<depotFile>//.+?)#(?P<revision>\d+|none) - (?P<action>[\w/]+) '
    r'(?:(?P<default>default change)|change (?P<change>\d+)) \((?P<type>[^)]+)\)'
    r'(?: by (?P<user>[^@\s]+)@(?P<client>\S+))?(?P<locked> \*locked\*)?'
)
_OPENED_BY_LINE = re.compile(
    r'^(?P<depotFile>.+?)#(?P<revision>\d+)\s+-\s+(?P<action>\w+)\s+by\s+(?P<user>.+?)@'
    r'(?P<client>.+?)\s+\((?P<changeInfo>.+?)\)(?:\s+(?P<type>.+))?'
)
_CHANGE_LINE = re.compile(
    r'^Change (?P<change>\d+) on (?P<date>\S+)(?: (?P<time>\d{1,2}:\d{2}:\d{2}))? '
    r'by (?P<user>\S+?)@(?P<client>\S+)(?: \*(?P<status>\w+)\*)? \'(?P<description>.*)\'?$'
)
_FILELOG_REVISION = re.compile(
    r'^\.\.\. #(?P<revision>\d+) change (?P<change>\d+) (?P<action>\S+) on (?P<date>\S+)'
    r'(?: (?P<time>\d{1,2}:\d{2}:\d{2}))? by (?P<user>\S+?)@(?P<client>\S+) '
    r'\((?P<type>[^)]+)\)(?: \'(?P<description>.*)\'?)?'
)
_FILELOG_INTEGRATION = re.compile(
    r'^\.\.\. \.\.\. (?P<how>.+?) (?P<direction>from|into|by) (?P<file>//[^#\s]+)'
    r'(?:#(?P<revisions>\S+))?$'
)
_CLIENT_LINE = re.compile(r'^Client (\S+) (\S+) root (.+?) \'(.*)\'?$')
_LABEL_LINE = re.compile(r'^Label (\S+) (\S+)(?: (\d{1,2}:\d{2}:\d{2}))? \'(.*)\'?$')
_DIFF_HEADER = re.compile(r'^==== (.+?)#(\d+) - (.+?) ====')
_DIFF_SUMMARY = re.compile(r'^(add|deleted|changed) (\d+) chunks (\d+)(?: / (\d+))? lines$')
_SYNC_LINE = re.compile(r'^(.+?)#(\d+)\s+-\s+(\w+)(?:\s+as)?\s+(.+)')
_RESOLVE_LINE = re.compile(
    r'^(?P<localFile>\S.*?) - (?P<action>[a-z][a-z ]*?)'
    r'(?: (?P<fromFile>//[^#\s]+)(?:#(?P<revisions>\S+))?)?\.?$'
)
_RESOLVE_CHUNKS = re.compile(
    r'^Diff chunks: (\d+) yours \+ (\d+) theirs \+ (\d+) both \+ (\d+) conflicting'
)
_SHELVE_CHANGE = re.compile(r'^(?:Change|Shelving files for change|Shelved change) (\d+)')
_SHELVE_FILE = re.compile(r'^([\w/]+) (//.+?)#(\d+)$')
_SHELVE_DELETED = re.compile(r'^Shelved file (//.+?)#(\d+) deleted')
_UNSHELVE_LINE = re.compile(r'^(//.+?)#(\d+|none) - unshelved, opened for (\w+)')
_COPY_LINE = re.compile(r'^(//.+?)#(\d+|none) - (.+?) from (//[^#\s]+)(?:#(\S+))?$')
_MOVE_LINE = re.compile(r'^(//.+?)#(\d+) - moved from (//[^#\s]+)(?:#(\d+))?$')
_ANNOTATE_HEADER = re.compile(r'^(//.+?)#(\d+) - (\S+) change (\d+) \(([^)]+)\)')
_ANNOTATE_RANGE = re.compile(r'^(\d+)-(\d+): ?(.*)$')
_ANNOTATE_SINGLE = re.compile(r'^(\d+): ?(.*)$')
_GREP_LINE = re.compile(r'^(//[^#]+)#(\d+):(?:(\d+):)?(.*)$')
_FILES_LINE = re.compile(r'^(//.+?)#(\d+) - (\S+) change (\d+) \(([^)]+)\)$')
_USER_LINE = re.compile(r'^(\S+) <([^>]*)> \((.*)\) accessed (\S+)$')
_JOB_LINE = re.compile(r'^(\S+) on (\S+) by (\S+) \*(\w+)\* \'(.*)\'?$')
_FIX_LINE = re.compile(
    r'^(\S+) fixed by change (\d+) on (\S+) by (\S+?)@(\S+) \((\w+)\)$'
)
_SIZES_SUMMARY = re.compile(r'^(.+?) (\d+) files (\d+) bytes')
_SIZES_FILE = re.compile(r'^(//.+?)#(\d+) (\d+) bytes$')
_HAVE_LINE = re.compile(r'^(//.+?)#(\d+) - (.+)$')
_WHERE_LINE = re.compile(r'^(-?//\S+) (-?//\S+) (.+)$')
_CHANGE_CREATED = re.compile(r'Change (\d+) created')
_CHANGE_SUBMITTED = re.compile(
    r'Change \d+ renamed change (\d+) and submitted|Change (\d+) submitted'
)


def parse_value(value: str) -> Scalar:
    """Coerce a field value to a number or boolean where it clearly is one."""
    if not value:
        return ''

    if _NUMERIC.fullmatch(value):
        return float(value) if '.' in value else int(value)

    lowered = value.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return value


def _lines(output: str) -> List[str]:
    return [line for line in output.split('\n') if line.strip()]


def _int(value: Optional[str]) -> Optional[int]:
    return int(value) if value is not None and value.isdigit() else None


def _description(value: Optional[str]) -> str:
    if value is None:
        return ''
    return value.rstrip("'").strip()


def split_script_warnings(output: str) -> Tuple[str, List[str]]:
    """Pull `warning:` lines of `p4 -s` output out of the result text."""
    lines = []
    warnings = []
    for line in output.split('\n'):
        match = _WARNING_TAG.match(line.rstrip('\r'))
        if match:
            if match.group(1).strip():
                warnings.append(match.group(1).strip())
        else:
            lines.append(line)
    return '\n'.join(lines), warnings


def strip_script_tags(output: str) -> str:
    """Undo the line tags added by `p4 -s`.

    `info: x` becomes `x`, `infoN: x` becomes `x` indented by N levels of `... `
    (the same shape p4 prints without -s) and the trailing `exit: N` line is dropped.
    """
    lines = []
    for line in output.split('\n'):
        if _EXIT_LINE.match(line.rstrip('\r')):
            continue
        match = _SCRIPT_TAG.match(line)
        if match:
            level = int(match.group(2)) if match.group(2) else 0
            lines.append('... ' * level + match.group(3))
        else:
            lines.append(line)
    return '\n'.join(lines)


def parse_tagged_records(output: str) -> List[ParsedRecord]:
    """Parse `-ztag` output into a list of records.

    Lines of the form `... key value` accumulate into the current record and a
    blank line closes it. Empty records are never emitted.
    """
    results: List[ParsedRecord] = []
    current: ParsedRecord = {}

    for line in output.split('\n'):
        trimmed = line.strip()
        if not trimmed:
            if current:
                results.append(current)
                current = {}
            continue

        match = _TAGGED_LINE.match(trimmed)
        if match:
            key, value = match.groups()
            current[key] = parse_value(value.strip())

    if current:
        results.append(current)
    return results


def parse_tagged(output: str) -> Union[ParsedRecord, List[ParsedRecord]]:
    """Parse `-ztag` output, unwrapping a single record."""
    records = parse_tagged_records(output)
    return records[0] if len(records) == 1 else records


def _camel_key(key: str) -> str:
    return re.sub(r'\s+(.)', lambda m: m.group(1).upper(), key)


def parse_colon_fields(
    output: str, camel_keys: bool = False, coerce: bool = False
) -> ParsedRecord:
    """Split each line at the first ': ' into a key and a value."""
    result: ParsedRecord = {}
    for line in output.split('\n'):
        trimmed = line.strip()
        colon_index = trimmed.find(': ')
        if colon_index <= 0:
            continue

        key = trimmed[:colon_index].strip()
        value = trimmed[colon_index + 2 :].strip()
        if camel_keys:
            key = _camel_key(key)
        result[key] = parse_value(value) if coerce else value
    return result


def parse_info(output: str) -> ParsedRecord:
    """Parse `p4 info` into a mapping with camel-joined keys."""
    return parse_colon_fields(output, camel_keys=True, coerce=True)


def parse_text_output(output: str) -> Union[ParsedRecord, List[str]]:
    """Default parse of plain text output.

    Output with at least one `key: value` line becomes a mapping; anything else
    is returned as the list of its non-blank lines.
    """
    lines = _lines(output)
    if any(': ' in line for line in lines):
        fields = parse_colon_fields(output)
        if fields:
            return fields
    return lines


def parse_spec_form(output: str) -> ParsedRecord:
    """Parse a spec form as printed by `p4 <spec> -o`.

    Single-line fields map to their value. Fields whose value is on the following
    tab-indented lines map to the list of those lines, except Description which
    is joined into one string.
    """
    result: ParsedRecord = {}
    current: Optional[str] = None

    for line in output.split('\n'):
        if line.startswith('#'):
            continue

        if line[:1] in ('\t', ' ') and current is not None:
            if line.strip():
                result[current].append(line.strip())
            continue

        match = re.match(r'^(\w+):\s*(.*)$', line)
        if not match:
            current = None
            continue

        key, value = match.groups()
        if value.strip():
            result[key] = value.strip()
            current = None
        else:
            result[key] = []
            current = key

    if isinstance(result.get('Description'), list):
        result['Description'] = '\n'.join(result['Description'])
    return result


def parse_opened(output: str) -> List[ParsedRecord]:
    """Parse `p4 opened` lines.

    Both the standard shape `file#rev - action change N (type)` and the
    `file#rev - action by user@client (change N) type` shape are recognized.
    """
    results: List[ParsedRecord] = []
    for line in _lines(output):
        match = _OPENED_LINE.match(line)
        if match:
            record: ParsedRecord = {
                'depotFile': match.group('depotFile'),
                'revision': _int(match.group('revision')),
                'action': match.group('action'),
                'change': match.group('change') or 'default',
                'type': match.group('type'),
            }
            if match.group('user'):
                record['user'] = match.group('user')
                record['client'] = match.group('client')
            if match.group('locked'):
                record['locked'] = True
            results.append(record)
            continue

        match = _OPENED_BY_LINE.match(line)
        if match:
            change_match = re.search(r'change (\d+)', match.group('changeInfo'))
            results.append(
                {
                    'depotFile': match.group('depotFile').strip(),
                    'revision': int(match.group('revision')),
                    'action': match.group('action'),
                    'user': match.group('user'),
                    'client': match.group('client'),
                    'change': change_match.group(1) if change_match else 'default',
                    'type': match.group('type') or 'text',
                }
            )
    return results


def parse_changes(output: str) -> List[ParsedRecord]:
    """Parse `p4 changes` summary lines."""
    results: List[ParsedRecord] = []
    for line in _lines(output):
        match = _CHANGE_LINE.match(line.rstrip())
        if not match:
            continue
        record: ParsedRecord = {
            'change': int(match.group('change')),
            'date': match.group('date'),
            'user': match.group('user'),
            'client': match.group('client'),
            'status': match.group('status') or 'submitted',
            'description': _description(match.group('description')),
        }
        if match.group('time'):
            record['time'] = match.group('time')
        results.append(record)
    return results


def parse_filelog(output: str) -> List[ParsedRecord]:
    """Parse `p4 filelog` into files with nested revisions and integrations."""
    results: List[ParsedRecord] = []
    current_file: Optional[ParsedRecord] = None
    current_revision: Optional[ParsedRecord] = None

    for line in output.split('\n'):
        trimmed = line.strip()
        if not trimmed:
            continue

        if trimmed.startswith('//') and '#' not in trimmed:
            if current_file is not None:
                results.append(current_file)
            current_file = {'depotFile': trimmed, 'revisions': []}
            current_revision = None
            continue

        if current_file is None:
            continue

        match = _FILELOG_REVISION.match(trimmed)
        if match:
            current_revision = {
                'revision': int(match.group('revision')),
                'change': int(match.group('change')),
                'action': match.group('action'),
                'date': match.group('date'),
                'user': match.group('user'),
                'client': match.group('client'),
                'type': match.group('type'),
                'description': _description(match.group('description')),
                'integrations': [],
            }
            current_file['revisions'].append(current_revision)
            continue

        match = _FILELOG_INTEGRATION.match(trimmed)
        if match and current_revision is not None:
            current_revision['integrations'].append(
                {
                    'how': match.group('how'),
                    'direction': match.group('direction'),
                    'file': match.group('file'),
                    'revisions': match.group('revisions') or '',
                }
            )

    if current_file is not None:
        results.append(current_file)
    return results


def parse_clients(output: str) -> List[ParsedRecord]:
    """Parse `p4 clients` listing lines."""
    results: List[ParsedRecord] = []
    for line in _lines(output):
        match = _CLIENT_LINE.match(line.rstrip())
        if match:
            client, date, root, description = match.groups()
            results.append(
                {
                    'client': client,
                    'date': date,
                    'root': root.strip(),
                    'description': _description(description),
                }
            )
    return results


def parse_labels(output: str) -> List[ParsedRecord]:
    """Parse `p4 labels` listing lines."""
    results: List[ParsedRecord] = []
    for line in _lines(output):
        match = _LABEL_LINE.match(line.rstrip())
        if match:
            label, date, _time, description = match.groups()
            results.append(
                {'label': label, 'date': date, 'description': _description(description)}
            )
    return results


def _close_diff_file(record: ParsedRecord, lines: List[str], added: int, removed: int):
    record['addedLines'] = added
    record['removedLines'] = removed
    record['diff'] = '\n'.join(lines)


def parse_diff(output: str) -> ParsedRecord:
    """Parse `p4 diff` output into per-file blocks with line counts.

    Unified diffs count `+`/`-` lines outside the `+++`/`---` headers. Summary
    output (`-ds`) records the add/deleted/changed chunk and line figures.
    """
    files: List[ParsedRecord] = []
    current: Optional[ParsedRecord] = None
    diff_lines: List[str] = []
    added = 0
    removed = 0

    for line in output.split('\n'):
        header = _DIFF_HEADER.match(line)
        if header:
            if current is not None:
                _close_diff_file(current, diff_lines, added, removed)
                files.append(current)
            depot_file, revision, local_file = header.groups()
            current = {'depotFile': depot_file, 'revision': int(revision), 'localFile': local_file}
            diff_lines = []
            added = 0
            removed = 0
            continue

        summary = _DIFF_SUMMARY.match(line.strip())
        if summary and current is not None:
            kind, chunks, lines, changed_to = summary.groups()
            entry = {'chunks': int(chunks), 'lines': int(lines)}
            if changed_to is not None:
                entry['linesAfter'] = int(changed_to)
            current.setdefault('summary', {})[kind] = entry

        if line.startswith('+') and not line.startswith('+++'):
            added += 1
        elif line.startswith('-') and not line.startswith('---'):
            removed += 1
        diff_lines.append(line)

    if current is not None:
        _close_diff_file(current, diff_lines, added, removed)
        files.append(current)

    return {
        'files': files,
        'totalFiles': len(files),
        'totalAddedLines': sum(f['addedLines'] for f in files),
        'totalRemovedLines': sum(f['removedLines'] for f in files),
    }


def parse_sync(output: str) -> List[ParsedRecord]:
    """Parse `p4 sync` lines such as `//depot/a#3 - updating /ws/a`."""
    results: List[ParsedRecord] = []
    for line in _lines(output):
        match = _SYNC_LINE.match(line)
        if match:
            depot_file, revision, action, local_file = match.groups()
            results.append(
                {
                    'depotFile': depot_file,
                    'revision': int(revision),
                    'action': action,
                    'localFile': local_file.strip(),
                }
            )
    return results


def parse_resolve(output: str) -> List[ParsedRecord]:
    """Parse `p4 resolve` output, attaching diff chunk counts to their file."""
    results: List[ParsedRecord] = []
    for line in _lines(output):
        chunks = _RESOLVE_CHUNKS.match(line.strip())
        if chunks:
            if results:
                yours, theirs, both, conflicting = (int(g) for g in chunks.groups())
                results[-1]['chunks'] = {
                    'yours': yours,
                    'theirs': theirs,
                    'both': both,
                    'conflicting': conflicting,
                }
            continue

        match = _RESOLVE_LINE.match(line.strip())
        if match:
            record: ParsedRecord = {
                'localFile': match.group('localFile'),
                'action': match.group('action').strip(),
            }
            if match.group('fromFile'):
                record['fromFile'] = match.group('fromFile')
                record['revisions'] = match.group('revisions') or ''
            results.append(record)
    return results


def parse_shelve(output: str) -> ParsedRecord:
    """Parse `p4 shelve` output into the change and the files it touched."""
    result: ParsedRecord = {'change': None, 'files': [], 'deleted': False}
    for line in _lines(output):
        trimmed = line.strip()
        match = _SHELVE_CHANGE.match(trimmed)
        if match:
            result['change'] = int(match.group(1))
            if 'deleted' in trimmed:
                result['deleted'] = True
            continue

        match = _SHELVE_DELETED.match(trimmed)
        if match:
            result['files'].append(
                {'depotFile': match.group(1), 'revision': int(match.group(2)), 'action': 'deleted'}
            )
            result['deleted'] = True
            continue

        match = _SHELVE_FILE.match(trimmed)
        if match:
            action, depot_file, revision = match.groups()
            result['files'].append(
                {'depotFile': depot_file, 'revision': int(revision), 'action': action}
            )
    return result


def parse_unshelve(output: str) -> List[ParsedRecord]:
    """Parse `p4 unshelve` lines."""
    results: List[ParsedRecord] = []
    for line in _lines(output):
        match = _UNSHELVE_LINE.match(line.strip())
        if match:
            depot_file, revision, action = match.groups()
            results.append(
                {'depotFile': depot_file, 'revision': _int(revision), 'action': action}
            )
    return results


def parse_copy(output: str) -> List[ParsedRecord]:
    """Parse `p4 copy` lines such as `//a#1 - branch/sync from //b#1,#3`."""
    results: List[ParsedRecord] = []
    for line in _lines(output):
        match = _COPY_LINE.match(line.strip())
        if match:
            depot_file, revision, action, from_file, from_revision = match.groups()
            results.append(
                {
                    'depotFile': depot_file,
                    'revision': _int(revision),
                    'action': action,
                    'fromFile': from_file,
                    'fromRevision': from_revision or '',
                }
            )
    return results


def parse_move(output: str) -> List[ParsedRecord]:
    """Parse `p4 move` lines such as `//new#1 - moved from //old#1`."""
    results: List[ParsedRecord] = []
    for line in _lines(output):
        match = _MOVE_LINE.match(line.strip())
        if match:
            depot_file, revision, from_file, from_revision = match.groups()
            results.append(
                {
                    'depotFile': depot_file,
                    'revision': int(revision),
                    'fromFile': from_file,
                    'fromRevision': _int(from_revision),
                }
            )
    return results


def parse_annotate(output: str) -> List[ParsedRecord]:
    """Parse `p4 annotate` output into files with their annotated lines."""
    results: List[ParsedRecord] = []
    current: Optional[ParsedRecord] = None

    for line in output.split('\n'):
        header = _ANNOTATE_HEADER.match(line)
        if header:
            depot_file, revision, action, change, file_type = header.groups()
            current = {
                'depotFile': depot_file,
                'revision': int(revision),
                'action': action,
                'change': int(change),
                'type': file_type,
                'lines': [],
            }
            results.append(current)
            continue

        if current is None:
            continue

        match = _ANNOTATE_RANGE.match(line)
        if match:
            lower, upper, text = match.groups()
            current['lines'].append({'lower': int(lower), 'upper': int(upper), 'line': text})
            continue

        match = _ANNOTATE_SINGLE.match(line)
        if match:
            revision, text = match.groups()
            current['lines'].append({'lower': int(revision), 'upper': int(revision), 'line': text})
    return results


def parse_grep(output: str) -> List[ParsedRecord]:
    """Parse `p4 grep -n` lines such as `//depot/a.c#3:12:text`."""
    results: List[ParsedRecord] = []
    for line in _lines(output):
        match = _GREP_LINE.match(line)
        if match:
            depot_file, revision, line_number, text = match.groups()
            record: ParsedRecord = {
                'depotFile': depot_file,
                'revision': int(revision),
                'line': text,
            }
            if line_number is not None:
                record['lineNumber'] = int(line_number)
            results.append(record)
    return results


def parse_files(output: str) -> List[ParsedRecord]:
    """Parse `p4 files` lines such as `//depot/a.c#3 - edit change 12 (text)`."""
    results: List[ParsedRecord] = []
    for line in _lines(output):
        match = _FILES_LINE.match(line.strip())
        if match:
            depot_file, revision, action, change, file_type = match.groups()
            results.append(
                {
                    'depotFile': depot_file,
                    'revision': int(revision),
                    'action': action,
                    'change': int(change),
                    'type': file_type,
                }
            )
    return results


def parse_dirs(output: str) -> List[ParsedRecord]:
    """Parse `p4 dirs` output, one depot directory per line."""
    return [{'dir': line.strip()} for line in _lines(output) if line.strip().startswith('//')]


def parse_users(output: str) -> List[ParsedRecord]:
    """Parse `p4 users` lines such as `bob <bob@x.com> (Bob) accessed 2024/01/01`."""
    results: List[ParsedRecord] = []
    for line in _lines(output):
        match = _USER_LINE.match(line.strip())
        if match:
            user, email, full_name, access = match.groups()
            results.append(
                {'user': user, 'email': email, 'fullName': full_name, 'access': access}
            )
    return results


def parse_jobs(output: str) -> List[ParsedRecord]:
    """Parse `p4 jobs` lines."""
    results: List[ParsedRecord] = []
    for line in _lines(output):
        match = _JOB_LINE.match(line.rstrip())
        if match:
            job, date, user, status, description = match.groups()
            results.append(
                {
                    'job': job,
                    'date': date,
                    'user': user,
                    'status': status,
                    'description': _description(description),
                }
            )
    return results


def parse_fixes(output: str) -> List[ParsedRecord]:
    """Parse `p4 fixes` lines."""
    results: List[ParsedRecord] = []
    for line in _lines(output):
        match = _FIX_LINE.match(line.strip())
        if match:
            job, change, date, user, client, status = match.groups()
            results.append(
                {
                    'job': job,
                    'change': int(change),
                    'date': date,
                    'user': user,
                    'client': client,
                    'status': status,
                }
            )
    return results


def parse_sizes(output: str) -> List[ParsedRecord]:
    """Parse `p4 sizes` output in either summary or per-file form."""
    results: List[ParsedRecord] = []
    for line in _lines(output):
        trimmed = line.strip()
        match = _SIZES_FILE.match(trimmed)
        if match:
            depot_file, revision, size = match.groups()
            results.append(
                {'depotFile': depot_file, 'revision': int(revision), 'fileSize': int(size)}
            )
            continue

        match = _SIZES_SUMMARY.match(trimmed)
        if match:
            path, file_count, total_bytes = match.groups()
            results.append(
                {'path': path, 'fileCount': int(file_count), 'totalBytes': int(total_bytes)}
            )
    return results


def parse_have(output: str) -> List[ParsedRecord]:
    """Parse `p4 have` lines such as `//depot/a.c#3 - /ws/a.c`."""
    results: List[ParsedRecord] = []
    for line in _lines(output):
        match = _HAVE_LINE.match(line.strip())
        if match:
            depot_file, revision, local_file = match.groups()
            results.append(
                {'depotFile': depot_file, 'revision': int(revision), 'localFile': local_file}
            )
    return results


def parse_where(output: str) -> List[ParsedRecord]:
    """Parse `p4 where` depot/client/local mapping triples.

    A leading '-' marks a path excluded by the client view.
    """
    results: List[ParsedRecord] = []
    for line in _lines(output):
        match = _WHERE_LINE.match(line.strip())
        if match:
            depot_file, client_file, local_file = match.groups()
            results.append(
                {
                    'depotFile': depot_file.lstrip('-'),
                    'clientFile': client_file.lstrip('-'),
                    'localFile': local_file,
                    'unmapped': depot_file.startswith('-'),
                }
            )
    return results


def parse_change_created(output: str) -> Optional[int]:
    """Return the number from a `Change N created` message."""
    match = _CHANGE_CREATED.search(output)
    return int(match.group(1)) if match else None


def parse_change_submitted(output: str) -> Optional[int]:
    """Return the final number from a submit message, following renames."""
    match = _CHANGE_SUBMITTED.search(output)
    if not match:
        return None
    return int(match.group(1) or match.group(2))
