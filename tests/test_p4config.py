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


"""Tests for the .p4config resolver."""

import os
import pytest
from awslabs.perforce_mcp_server.models import P4ConfigResult
from awslabs.perforce_mcp_server.p4config import (
    P4ConfigResolver,
    build_environment,
    parse_config_text,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove connection variables of the developer's environment."""
    for key in ('P4CONFIG', 'P4PORT', 'P4USER', 'P4CLIENT', 'P4PASSWD'):
        monkeypatch.delenv(key, raising=False)


class TestParseConfigText:
    """Tests for config file parsing."""

    def test_parses_key_values(self):
        """Comments and blank lines are skipped and values are unquoted."""
        content = (
            '# connection\n'
            '; another comment\n'
            '\n'
            'P4PORT=ssl:perforce:1666\n'
            'P4USER = bob\n'
            'P4CLIENT="bob ws"\n'
            "P4PASSWD='a=b'\n"
            'not a setting\n'
        )
        assert parse_config_text(content) == {
            'P4PORT': 'ssl:perforce:1666',
            'P4USER': 'bob',
            'P4CLIENT': 'bob ws',
            'P4PASSWD': 'a=b',
        }

    def test_mismatched_quotes_are_kept(self):
        """Only matching quotes are removed."""
        assert parse_config_text('P4USER="bob\'') == {'P4USER': '"bob\''}

    def test_parsing_twice_gives_the_same_map(self):
        """Parsing is deterministic for recognized keys."""
        content = 'P4PORT=ssl:perforce:1666\nP4USER=bob\nP4CLIENT=bob-ws\nP4CHARSET=utf8\n'
        first = parse_config_text(content)
        assert parse_config_text(content) == first
        assert build_environment(first, '.p4config') == build_environment(
            parse_config_text(content), '.p4config'
        )

    def test_build_environment_keeps_known_keys(self):
        """Unknown keys are dropped and the config marker is set."""
        env = build_environment({'P4PORT': '1666', 'EDITOR': 'vim', 'P4USER': ''}, '.p4config')
        assert env == {'P4CONFIG': '.p4config', 'P4PORT': '1666'}


class TestP4ConfigResolver:
    """Tests for the upward config search."""

    @pytest.mark.asyncio
    async def test_find_config_in_ancestor(self, tmp_path):
        """The nearest ancestor config wins and becomes the project root."""
        (tmp_path / '.p4config').write_text('P4PORT=1666\nP4USER=bob\nP4CLIENT=bob-ws\n')
        nested = tmp_path / 'src' / 'module'
        nested.mkdir(parents=True)

        result = await P4ConfigResolver().find_config(str(nested))

        assert result.found is True
        assert result.config_path == str(tmp_path / '.p4config')
        assert result.project_root == str(tmp_path)
        assert result.config['P4CLIENT'] == 'bob-ws'
        assert result.environment['P4CONFIG'] == '.p4config'
        assert result.environment['P4PORT'] == '1666'

    @pytest.mark.asyncio
    async def test_nearest_config_wins(self, tmp_path):
        """A config closer to the start path shadows outer ones."""
        (tmp_path / '.p4config').write_text('P4CLIENT=outer\n')
        inner = tmp_path / 'inner'
        inner.mkdir()
        (inner / '.p4config').write_text('P4CLIENT=inner\n')

        result = await P4ConfigResolver().find_config(str(inner))

        assert result.config == {'P4CLIENT': 'inner'}
        assert result.project_root == str(inner)

    @pytest.mark.asyncio
    async def test_repeated_search_is_stable(self, tmp_path):
        """Searching the same tree twice yields identical maps."""
        (tmp_path / '.p4config').write_text('P4PORT=1666\nP4USER=bob\nP4CLIENT=bob-ws\n')
        resolver = P4ConfigResolver()

        first = await resolver.find_config(str(tmp_path))
        second = await resolver.find_config(str(tmp_path))

        assert second.config == first.config
        assert second.environment == first.environment
        assert second == first

    @pytest.mark.asyncio
    async def test_custom_config_name(self, tmp_path, monkeypatch):
        """The P4CONFIG variable names the file to look for."""
        monkeypatch.setenv('P4CONFIG', 'p4.cfg')
        (tmp_path / 'p4.cfg').write_text('P4USER=amy\n')

        result = await P4ConfigResolver().find_config(str(tmp_path))

        assert result.found is True
        assert result.environment == {'P4CONFIG': 'p4.cfg', 'P4USER': 'amy'}

    @pytest.mark.asyncio
    async def test_directory_named_like_config_is_ignored(self, tmp_path):
        """Only regular files count as config files."""
        (tmp_path / 'ws').mkdir()
        (tmp_path / 'ws' / '.p4config').mkdir()

        result = await P4ConfigResolver('.p4config').find_config(str(tmp_path / 'ws'))

        assert result.config_path != str(tmp_path / 'ws' / '.p4config')

    @pytest.mark.asyncio
    async def test_not_found(self, tmp_path, mocker):
        """A missing config yields only the config marker."""
        mocker.patch('os.path.isfile', return_value=False)

        result = await P4ConfigResolver().find_config(str(tmp_path))

        assert result == P4ConfigResult(found=False, environment={'P4CONFIG': '.p4config'})

    @pytest.mark.asyncio
    async def test_read_errors_become_not_found(self, tmp_path, mocker):
        """Filesystem errors are never raised."""
        (tmp_path / '.p4config').write_text('P4USER=bob\n')
        mocker.patch(
            'awslabs.perforce_mcp_server.p4config._read_text', side_effect=PermissionError('denied')
        )

        result = await P4ConfigResolver().find_config(str(tmp_path))

        assert result.found is False

    @pytest.mark.asyncio
    async def test_setup_for_command_uses_project_root(self, tmp_path):
        """The project root becomes the working directory."""
        (tmp_path / '.p4config').write_text('P4USER=bob\n')
        nested = tmp_path / 'a' / 'b'
        nested.mkdir(parents=True)

        setup = await P4ConfigResolver().setup_for_command(str(nested))

        assert setup.cwd == str(tmp_path)
        assert setup.env['P4USER'] == 'bob'
        assert setup.config_result.found is True

    @pytest.mark.asyncio
    async def test_setup_for_command_without_config(self, tmp_path, mocker):
        """Without a config the start path is the working directory."""
        mocker.patch('os.path.isfile', return_value=False)

        setup = await P4ConfigResolver().setup_for_command(str(tmp_path))

        assert setup.cwd == str(tmp_path)
        assert setup.env == {'P4CONFIG': '.p4config'}

    @pytest.mark.asyncio
    async def test_setup_defaults_to_current_directory(self, mocker):
        """The search starts in the current directory when no path is given."""
        mocker.patch('os.path.isfile', return_value=False)

        setup = await P4ConfigResolver().setup_for_command()

        assert setup.cwd == os.getcwd()


class TestValidateEnvironment:
    """Tests for the required settings check."""

    def test_valid_config(self):
        """Port, user and client from the config are enough."""
        result = P4ConfigResult(
            found=True,
            config_path='/ws/.p4config',
            project_root='/ws',
            config={'P4PORT': '1666', 'P4USER': 'bob', 'P4CLIENT': 'bob-ws'},
        )
        validation = P4ConfigResolver().validate_environment(result)
        assert validation.valid is True
        assert validation.errors == []

    def test_process_environment_fills_gaps(self, monkeypatch):
        """Settings missing from the config may come from the process."""
        monkeypatch.setenv('P4PORT', '1666')
        result = P4ConfigResult(found=True, config={'P4USER': 'bob', 'P4CLIENT': 'bob-ws'})
        assert P4ConfigResolver().validate_environment(result).valid is True

    def test_missing_config_and_keys(self):
        """Every problem is listed."""
        validation = P4ConfigResolver().validate_environment(P4ConfigResult(found=False))
        assert validation.valid is False
        assert validation.errors == [
            'No .p4config file found in current directory or parent directories',
            'Required configuration missing: P4PORT',
            'Required configuration missing: P4USER',
            'Required configuration missing: P4CLIENT',
        ]
