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


"""Tests for the p4 output parsers."""

import json
from awslabs.perforce_mcp_server.parsers import (
    parse_annotate,
    parse_change_created,
    parse_change_submitted,
    parse_changes,
    parse_clients,
    parse_copy,
    parse_diff,
    parse_dirs,
    parse_filelog,
    parse_files,
    parse_fixes,
    parse_grep,
    parse_have,
    parse_info,
    parse_jobs,
    parse_labels,
    parse_move,
    parse_opened,
    parse_resolve,
    parse_shelve,
    parse_sizes,
    parse_spec_form,
    parse_sync,
    parse_tagged,
    parse_tagged_records,
    parse_text_output,
    parse_unshelve,
    parse_users,
    parse_value,
    parse_where,
    split_script_warnings,
    strip_script_tags,
)


class TestBasicParsers:
    """Tests for value coercion, script tags and tagged output."""

    def test_parse_value(self):
        """Numbers and booleans are coerced, other text is kept."""
        assert parse_value('42') == 42
        assert parse_value('1.5') == 1.5
        assert parse_value('Yes') is True
        assert parse_value('off') is False
        assert parse_value('//depot/a.c') == '//depot/a.c'
        assert parse_value('') == ''

    def test_strip_script_tags(self):
        """Script tags are removed and nesting levels become `... ` prefixes."""
        output = 'info: //depot/a.c\ninfo1: change 42\ntext: hello\nexit: 0'
        assert strip_script_tags(output) == '//depot/a.c\n... change 42\nhello'

    def test_strip_script_tags_keeps_untagged_lines(self):
        """Lines without a tag pass through unchanged."""
        assert strip_script_tags('plain line') == 'plain line'

    def test_split_script_warnings(self):
        """Warning lines leave the output and keep their text."""
        output = (
            'info: //depot/a.c#2 - updating /ws/a.c\n'
            'warning: //depot/b.c - no such file(s).\n'
            'warning1: \n'
            'exit: 0'
        )
        text, warnings = split_script_warnings(output)
        assert text == 'info: //depot/a.c#2 - updating /ws/a.c\nexit: 0'
        assert warnings == ['//depot/b.c - no such file(s).']

    def test_split_script_warnings_without_warnings(self):
        """Output without warnings is returned as is."""
        assert split_script_warnings('info: ok\nexit: 0') == ('info: ok\nexit: 0', [])

    def test_parse_tagged_records(self):
        """Blank lines separate records and values are coerced."""
        output = '... change 42\n... user bob\n\n... change 43\n... user amy\n'
        assert parse_tagged_records(output) == [
            {'change': 42, 'user': 'bob'},
            {'change': 43, 'user': 'amy'},
        ]

    def test_parsed_records_survive_json(self):
        """Numbers stay numbers and booleans stay booleans through JSON."""
        output = '... key1 value1\n... key2 42\n... f 1.5\n... b true\n\n... key1 othervalue\n'
        records = parse_tagged_records(output)
        assert records == [
            {'key1': 'value1', 'key2': 42, 'f': 1.5, 'b': True},
            {'key1': 'othervalue'},
        ]

        restored = json.loads(json.dumps(records))
        assert restored == records
        assert isinstance(restored[0]['key2'], int)
        assert isinstance(restored[0]['f'], float)
        assert restored[0]['b'] is True

    def test_parse_tagged_unwraps_single_record(self):
        """A single record is returned as a mapping."""
        assert parse_tagged('... change 42\n... desc Fix build\n') == {
            'change': 42,
            'desc': 'Fix build',
        }

    def test_parse_tagged_empty(self):
        """Empty output gives an empty list."""
        assert parse_tagged('') == []

    def test_parse_info(self):
        """Info keys are camel-joined and values coerced."""
        output = (
            'User name: bob\n'
            'Client name: bob-ws\n'
            'Client root: /home/bob/ws\n'
            'Server address: ssl:perforce:1666\n'
            'Server license: none\n'
        )
        result = parse_info(output)
        assert result['UserName'] == 'bob'
        assert result['ClientName'] == 'bob-ws'
        assert result['ClientRoot'] == '/home/bob/ws'
        assert result['ServerAddress'] == 'ssl:perforce:1666'

    def test_parse_text_output(self):
        """Key-value text becomes a mapping, anything else a list of lines."""
        assert parse_text_output('Key: value\nOther: thing') == {'Key': 'value', 'Other': 'thing'}
        assert parse_text_output('line one\n\nline two') == ['line one', 'line two']

    def test_parse_spec_form(self):
        """Multi-line fields become lists and Description is joined."""
        output = (
            '# A Perforce Change Specification.\n'
            'Change:\t42\n'
            '\n'
            'Client:\tbob-ws\n'
            '\n'
            'Status:\tpending\n'
            '\n'
            'Description:\n'
            '\tFix the build\n'
            '\tsecond line\n'
            '\n'
            'Files:\n'
            '\t//depot/a.c\t# edit\n'
            '\t//depot/b.c\t# add\n'
        )
        result = parse_spec_form(output)
        assert result['Change'] == '42'
        assert result['Client'] == 'bob-ws'
        assert result['Status'] == 'pending'
        assert result['Description'] == 'Fix the build\nsecond line'
        assert result['Files'] == ['//depot/a.c\t# edit', '//depot/b.c\t# add']


class TestWorkspaceParsers:
    """Tests for parsers of workspace commands."""

    def test_parse_opened(self):
        """Default and numbered changelists are both recognized."""
        output = (
            '//depot/main/a.c#3 - edit default change (text)\n'
            '//depot/main/b.c#none - add change 42 (text+x) *locked*\n'
        )
        result = parse_opened(output)
        assert result == [
            {
                'depotFile': '//depot/main/a.c',
                'revision': 3,
                'action': 'edit',
                'change': 'default',
                'type': 'text',
            },
            {
                'depotFile': '//depot/main/b.c',
                'revision': None,
                'action': 'add',
                'change': '42',
                'type': 'text+x',
                'locked': True,
            },
        ]

    def test_parse_opened_other_users(self):
        """Lines of files opened by other users carry user and client."""
        output = '//depot/main/a.c#3 - edit change 42 (text) by amy@amy-ws'
        result = parse_opened(output)
        assert result[0]['user'] == 'amy'
        assert result[0]['client'] == 'amy-ws'
        assert result[0]['change'] == '42'

    def test_parse_opened_skips_noise(self):
        """Unmatched lines are skipped."""
        assert parse_opened('File(s) not opened on this client.') == []

    def test_parse_sync(self):
        """Sync actions and local paths are extracted."""
        output = '//depot/a.c#3 - updating /ws/a.c\n//depot/b.c#1 - added as /ws/b.c\n'
        assert parse_sync(output) == [
            {'depotFile': '//depot/a.c', 'revision': 3, 'action': 'updating', 'localFile': '/ws/a.c'},
            {'depotFile': '//depot/b.c', 'revision': 1, 'action': 'added', 'localFile': '/ws/b.c'},
        ]

    def test_parse_diff_unified(self):
        """Added and removed lines are counted per file, excluding headers."""
        output = (
            '==== //depot/main/a.c#3 - /ws/main/a.c ====\n'
            '--- //depot/main/a.c\n'
            '+++ /ws/main/a.c\n'
            '@@ -1,2 +1,3 @@\n'
            '-old line\n'
            '+new line\n'
            '+another line\n'
            ' context\n'
            '==== //depot/main/b.c#1 - /ws/main/b.c ====\n'
            '-gone\n'
        )
        result = parse_diff(output)
        assert result['totalFiles'] == 2
        assert result['totalAddedLines'] == 2
        assert result['totalRemovedLines'] == 2
        first = result['files'][0]
        assert first['depotFile'] == '//depot/main/a.c'
        assert first['revision'] == 3
        assert first['localFile'] == '/ws/main/a.c'
        assert first['addedLines'] == 2
        assert first['removedLines'] == 1
        assert '+new line' in first['diff']

    def test_parse_diff_summary(self):
        """Summary output records chunk and line figures."""
        output = (
            '==== //depot/main/a.c#3 - /ws/main/a.c ====\n'
            'add 1 chunks 2 lines\n'
            'deleted 0 chunks 0 lines\n'
            'changed 1 chunks 3 / 4 lines\n'
        )
        summary = parse_diff(output)['files'][0]['summary']
        assert summary['add'] == {'chunks': 1, 'lines': 2}
        assert summary['deleted'] == {'chunks': 0, 'lines': 0}
        assert summary['changed'] == {'chunks': 1, 'lines': 3, 'linesAfter': 4}

    def test_parse_diff_empty(self):
        """No output means no files."""
        assert parse_diff('') == {
            'files': [],
            'totalFiles': 0,
            'totalAddedLines': 0,
            'totalRemovedLines': 0,
        }

    def test_parse_resolve(self):
        """Diff chunk counts are attached to the preceding file."""
        output = (
            '/ws/main/a.c - merging //depot/main/a.c#2,#3\n'
            'Diff chunks: 1 yours + 2 theirs + 0 both + 1 conflicting\n'
        )
        result = parse_resolve(output)
        assert result == [
            {
                'localFile': '/ws/main/a.c',
                'action': 'merging',
                'fromFile': '//depot/main/a.c',
                'revisions': '2,#3',
                'chunks': {'yours': 1, 'theirs': 2, 'both': 0, 'conflicting': 1},
            }
        ]

    def test_parse_copy(self):
        """Copy lines carry the source file and revision range."""
        output = '//depot/rel/a.c#1 - branch/sync from //depot/main/a.c#1,#3'
        assert parse_copy(output) == [
            {
                'depotFile': '//depot/rel/a.c',
                'revision': 1,
                'action': 'branch/sync',
                'fromFile': '//depot/main/a.c',
                'fromRevision': '1,#3',
            }
        ]

    def test_parse_move(self):
        """Move lines carry the old location."""
        assert parse_move('//depot/new.c#1 - moved from //depot/old.c#1') == [
            {
                'depotFile': '//depot/new.c',
                'revision': 1,
                'fromFile': '//depot/old.c',
                'fromRevision': 1,
            }
        ]

    def test_parse_have(self):
        """Have lines map depot revisions to local files."""
        assert parse_have('//depot/a.c#3 - /ws/a.c') == [
            {'depotFile': '//depot/a.c', 'revision': 3, 'localFile': '/ws/a.c'}
        ]

    def test_parse_where(self):
        """Excluded mappings are flagged as unmapped."""
        output = (
            '//depot/main/a.c //bob-ws/main/a.c /home/bob/ws/main/a.c\n'
            '-//depot/main/secret.c -//bob-ws/main/secret.c /home/bob/ws/main/secret.c\n'
        )
        result = parse_where(output)
        assert result[0] == {
            'depotFile': '//depot/main/a.c',
            'clientFile': '//bob-ws/main/a.c',
            'localFile': '/home/bob/ws/main/a.c',
            'unmapped': False,
        }
        assert result[1]['depotFile'] == '//depot/main/secret.c'
        assert result[1]['unmapped'] is True


class TestChangelistParsers:
    """Tests for parsers of changelist commands."""

    def test_parse_changes(self):
        """Status defaults to submitted and the description quote is removed."""
        output = (
            "Change 43 on 2024/01/16 by amy@amy-ws *pending* 'Work in progress '\n"
            "Change 42 on 2024/01/15 14:03:11 by bob@bob-ws 'Fix bob's build '\n"
        )
        result = parse_changes(output)
        assert result[0] == {
            'change': 43,
            'date': '2024/01/16',
            'user': 'amy',
            'client': 'amy-ws',
            'status': 'pending',
            'description': 'Work in progress',
        }
        assert result[1]['status'] == 'submitted'
        assert result[1]['time'] == '14:03:11'
        assert result[1]['description'] == "Fix bob's build"

    def test_parse_shelve(self):
        """The change number and shelved files are extracted."""
        output = 'Shelving files for change 42.\nedit //depot/a.c#3\nChange 42 files shelved.\n'
        assert parse_shelve(output) == {
            'change': 42,
            'files': [{'depotFile': '//depot/a.c', 'revision': 3, 'action': 'edit'}],
            'deleted': False,
        }

    def test_parse_shelve_delete(self):
        """Deleting a shelf is reported."""
        result = parse_shelve('Shelved change 42 deleted.')
        assert result['change'] == 42
        assert result['deleted'] is True

    def test_parse_unshelve(self):
        """Unshelved files report the action they were opened for."""
        assert parse_unshelve('//depot/a.c#3 - unshelved, opened for edit') == [
            {'depotFile': '//depot/a.c', 'revision': 3, 'action': 'edit'}
        ]

    def test_parse_change_created(self):
        """The new changelist number is extracted."""
        assert parse_change_created('Change 42 created with 1 open file(s).') == 42
        assert parse_change_created('nothing') is None

    def test_parse_change_submitted(self):
        """A renamed change reports its final number."""
        assert parse_change_submitted('Submitting change 42.\nChange 42 submitted.') == 42
        assert parse_change_submitted('Change 42 renamed change 45 and submitted.') == 45
        assert parse_change_submitted('Submit aborted') is None


class TestDepotParsers:
    """Tests for parsers of depot and metadata commands."""

    def test_parse_filelog(self):
        """Revisions and their integration records are nested under the file."""
        output = (
            '//depot/main/a.c\n'
            "... #3 change 120 edit on 2024/01/10 by bob@bob-ws (text) 'Fix bug '\n"
            '... ... copy into //depot/rel/a.c#2\n'
            "... #2 change 100 integrate on 2024/01/05 by amy@amy-ws (text) 'Merge '\n"
            '... ... merge from //depot/dev/a.c#4,#6\n'
        )
        result = parse_filelog(output)
        assert len(result) == 1
        assert result[0]['depotFile'] == '//depot/main/a.c'
        revisions = result[0]['revisions']
        assert revisions[0]['revision'] == 3
        assert revisions[0]['change'] == 120
        assert revisions[0]['user'] == 'bob'
        assert revisions[0]['client'] == 'bob-ws'
        assert revisions[0]['description'] == 'Fix bug'
        assert revisions[0]['integrations'] == [
            {'how': 'copy', 'direction': 'into', 'file': '//depot/rel/a.c', 'revisions': '2'}
        ]
        assert revisions[1]['integrations'][0]['revisions'] == '4,#6'

    def test_parse_annotate(self):
        """Annotated lines carry their revision range."""
        output = '//depot/a.c#3 - edit change 120 (text)\n1-3: int main() {\n2-2:   return 0;\n'
        result = parse_annotate(output)
        assert result[0]['depotFile'] == '//depot/a.c'
        assert result[0]['change'] == 120
        assert result[0]['lines'] == [
            {'lower': 1, 'upper': 3, 'line': 'int main() {'},
            {'lower': 2, 'upper': 2, 'line': '  return 0;'},
        ]

    def test_parse_grep(self):
        """Grep lines carry file, revision and line number."""
        assert parse_grep('//depot/main/a.c#3:12:int main() {') == [
            {'depotFile': '//depot/main/a.c', 'revision': 3, 'line': 'int main() {', 'lineNumber': 12}
        ]

    def test_parse_files(self):
        """File lines carry revision, action, change and type."""
        assert parse_files('//depot/a.c#3 - edit change 120 (text)') == [
            {'depotFile': '//depot/a.c', 'revision': 3, 'action': 'edit', 'change': 120, 'type': 'text'}
        ]

    def test_parse_dirs(self):
        """Only depot paths are listed."""
        assert parse_dirs('//depot/main\n//depot/rel\nno such file(s).') == [
            {'dir': '//depot/main'},
            {'dir': '//depot/rel'},
        ]

    def test_parse_sizes(self):
        """Summary and per-file forms are both recognized."""
        output = '//depot/... 12 files 34567 bytes\n//depot/a.c#3 1024 bytes\n'
        assert parse_sizes(output) == [
            {'path': '//depot/...', 'fileCount': 12, 'totalBytes': 34567},
            {'depotFile': '//depot/a.c', 'revision': 3, 'fileSize': 1024},
        ]

    def test_parse_users(self):
        """User lines carry email, full name and access date."""
        assert parse_users('bob <bob@example.com> (Bob Smith) accessed 2024/01/15') == [
            {
                'user': 'bob',
                'email': 'bob@example.com',
                'fullName': 'Bob Smith',
                'access': '2024/01/15',
            }
        ]

    def test_parse_clients(self):
        """Client lines carry root and description."""
        output = "Client bob-ws 2024/01/10 root /home/bob/ws 'Created by bob. '"
        assert parse_clients(output) == [
            {
                'client': 'bob-ws',
                'date': '2024/01/10',
                'root': '/home/bob/ws',
                'description': 'Created by bob.',
            }
        ]

    def test_parse_jobs(self):
        """Job lines carry status and description."""
        output = "job000001 on 2024/01/10 by bob *open* 'Crash on start '"
        assert parse_jobs(output) == [
            {
                'job': 'job000001',
                'date': '2024/01/10',
                'user': 'bob',
                'status': 'open',
                'description': 'Crash on start',
            }
        ]

    def test_parse_fixes(self):
        """Fix lines carry the fixing change."""
        output = 'job000001 fixed by change 120 on 2024/01/12 by bob@bob-ws (closed)'
        assert parse_fixes(output) == [
            {
                'job': 'job000001',
                'change': 120,
                'date': '2024/01/12',
                'user': 'bob',
                'client': 'bob-ws',
                'status': 'closed',
            }
        ]

    def test_parse_labels(self):
        """Label lines carry date and description."""
        assert parse_labels("Label rel-1.0 2024/01/10 'Release 1.0 '") == [
            {'label': 'rel-1.0', 'date': '2024/01/10', 'description': 'Release 1.0'}
        ]

    def test_parsers_never_raise_on_garbage(self):
        """Unexpected text yields empty results."""
        garbage = '\x00\n### ???\n==== broken'
        assert parse_changes(garbage) == []
        assert parse_filelog(garbage) == []
        assert parse_annotate(garbage) == []
        assert parse_where(garbage) == []
