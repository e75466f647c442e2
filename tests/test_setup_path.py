"""
Tests for PATH persistence and post-install verification
"""
import os
import sys

import pytest

from conftest import LAUNCHER_SCRIPT
from liquibase_installer import setup_path
from liquibase_installer.errors import VerificationFailedError
from liquibase_installer.setup_path import (
    PATH_MARKER,
    ensure_on_path,
    export_line,
    find_shell_profile,
    is_in_path,
    parse_version_output,
    verify_installation,
)


@pytest.fixture
def bin_dir(tmp_path, monkeypatch):
    directory = tmp_path / 'prefix' / 'bin'
    monkeypatch.setenv('PATH', os.pathsep.join(['/usr/bin', '/bin']))
    return directory


class TestPathLookup:

    def test_in_path(self, tmp_path):
        path_value = os.pathsep.join(['/usr/bin', str(tmp_path)])
        assert is_in_path(tmp_path, path_value)

    def test_trailing_separator_normalized(self, tmp_path):
        assert is_in_path(tmp_path, str(tmp_path) + os.sep)

    def test_not_in_path(self, tmp_path):
        assert not is_in_path(tmp_path / 'bin', '/usr/bin')
        assert not is_in_path(tmp_path, '')


class TestShellProfile:

    def test_preference_order(self, home):
        (home / '.zshrc').write_text('')
        (home / '.bash_profile').write_text('')
        assert find_shell_profile(home) == home / '.bash_profile'

        (home / '.bashrc').write_text('')
        assert find_shell_profile(home) == home / '.bashrc'

    def test_profile_fallback(self, home):
        (home / '.profile').write_text('')
        assert find_shell_profile(home) == home / '.profile'

    def test_none_found(self, home):
        assert find_shell_profile(home) is None


class TestEnsureOnPath:

    def test_appends_export(self, home, bin_dir, reporter):
        profile = home / '.bashrc'
        profile.write_text('alias ll="ls -l"')

        assert ensure_on_path(bin_dir, home=home, reporter=reporter) == profile
        content = profile.read_text()
        assert content.startswith('alias ll="ls -l"\n')
        assert PATH_MARKER in content
        assert content.endswith(export_line(bin_dir) + '\n')
        assert f"source {profile}" in reporter.text()

    def test_idempotent(self, home, bin_dir, reporter):
        profile = home / '.zshrc'
        profile.write_text('')

        ensure_on_path(bin_dir, home=home, reporter=reporter)
        ensure_on_path(bin_dir, home=home, reporter=reporter)
        assert profile.read_text().count(export_line(bin_dir)) == 1

    def test_dry_run_leaves_profile_alone(self, home, bin_dir, reporter):
        profile = home / '.bashrc'
        profile.write_text('')

        assert ensure_on_path(bin_dir, dry_run=True, home=home, reporter=reporter) == profile
        assert profile.read_text() == ''
        assert '[DRY RUN] Would add' in reporter.text()

    def test_dry_run_reports_existing_line(self, home, bin_dir, reporter):
        profile = home / '.bashrc'
        profile.write_text(export_line(bin_dir) + '\n')

        assert ensure_on_path(bin_dir, dry_run=True, home=home, reporter=reporter) == profile
        assert 'Would add' not in reporter.text()
        assert 'PATH already contains' in reporter.text()

    def test_unwritable_profile_warns(self, home, bin_dir, reporter, monkeypatch):
        """A read-only startup file must not abort an otherwise finished install"""
        profile = home / '.bashrc'
        profile.write_text('')
        real_open = open

        def read_only(path, mode='r', *args, **kwargs):
            if 'a' in mode:
                raise PermissionError(13, 'Read-only file system', str(path))
            return real_open(path, mode, *args, **kwargs)
        monkeypatch.setattr('builtins.open', read_only)

        assert ensure_on_path(bin_dir, home=home, reporter=reporter) is None
        assert 'Could not update' in reporter.text()
        assert export_line(bin_dir) in reporter.text()

    def test_unreadable_profile_warns(self, home, bin_dir, reporter, monkeypatch):
        profile = home / '.bashrc'
        profile.write_text('')

        def unreadable(self, *args, **kwargs):
            raise OSError(22, 'Invalid argument')
        monkeypatch.setattr(setup_path.Path, 'read_text', unreadable)

        assert ensure_on_path(bin_dir, home=home, reporter=reporter) is None
        assert 'WARN' in reporter.text()

    def test_already_on_path(self, home, bin_dir, reporter, monkeypatch):
        profile = home / '.bashrc'
        profile.write_text('')
        monkeypatch.setenv('PATH', str(bin_dir))

        assert ensure_on_path(bin_dir, home=home, reporter=reporter) is None
        assert profile.read_text() == ''

    def test_no_profile_prints_manual_step(self, home, bin_dir, reporter):
        assert ensure_on_path(bin_dir, home=home, reporter=reporter) is None
        assert 'Could not determine shell profile' in reporter.text()
        assert export_line(bin_dir) in reporter.text()


class TestVersionOutput:

    def test_version_line(self):
        output = "####\n## Liquibase ##\n####\nLiquibase Version: 4.33.0\nJava Home /opt/java\n"
        assert parse_version_output(output) == '4.33.0'

    def test_first_semver(self):
        assert parse_version_output('liquibase 5.0.0-rc1 (build abc)') == '5.0.0-rc1'

    def test_first_line_fallback(self):
        assert parse_version_output('\n  dev build\nother') == 'dev build'

    def test_empty(self):
        assert parse_version_output('') is None


class TestVerifyInstallation:

    @pytest.mark.skipif(sys.platform == 'win32', reason='runs a POSIX shell script')
    def test_runs_fresh_launcher(self, home, tmp_path, reporter, monkeypatch):
        monkeypatch.setattr(setup_path.shutil, 'which', lambda name: None)
        launcher = tmp_path / 'bin' / 'liquibase'
        launcher.parent.mkdir()
        launcher.write_bytes(LAUNCHER_SCRIPT)
        launcher.chmod(0o755)

        assert verify_installation(launcher, timeout=30, reporter=reporter) == '4.33.0'
        assert 'Version: 4.33.0' in reporter.text()

    def test_path_lookup_comes_first(self, home, tmp_path, monkeypatch):
        launcher = tmp_path / 'liquibase'
        launcher.write_text('')
        monkeypatch.setattr(setup_path.shutil, 'which', lambda name: '/opt/tools/liquibase')

        candidates = setup_path.verification_candidates(launcher)
        assert candidates[:2] == ['/opt/tools/liquibase', str(launcher)]

    def test_nothing_responds(self, home, tmp_path, reporter, monkeypatch):
        launcher = tmp_path / 'liquibase'
        launcher.write_text('')
        monkeypatch.setattr(setup_path.shutil, 'which', lambda name: None)
        monkeypatch.setattr(setup_path, '_run_version', lambda executable, timeout: None)

        with pytest.raises(VerificationFailedError) as exc_info:
            verify_installation(launcher, reporter=reporter)
        assert 'java' in exc_info.value.hint.lower()
