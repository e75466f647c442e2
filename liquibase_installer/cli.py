#!/usr/bin/env python3
"""
Liquibase Installer CLI - Command-line interface
Click-based entry point: liquibase-install [OPTIONS] [latest|X.Y.Z] [oss|secure]
"""

import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional, Sequence, Tuple

import click

from liquibase_installer import __version__
from liquibase_installer.config import ConfigManager
from liquibase_installer.errors import InstallerError, UnknownArgumentError
from liquibase_installer.installer import InstallResult, run_install
from liquibase_installer.output import Reporter, configure_reporter
from liquibase_installer.release import LATEST, Edition, is_valid_version

# Force UTF-8 encoding for stdout/stderr on Windows terminals
if sys.platform == 'win32':
    import io
    if isinstance(sys.stdout, io.TextIOWrapper):
        sys.stdout.reconfigure(encoding='utf-8', errors='replace')
    if isinstance(sys.stderr, io.TextIOWrapper):
        sys.stderr.reconfigure(encoding='utf-8', errors='replace')

EDITIONS = {edition.value: edition for edition in Edition}

HELP_EPILOG = """\b
VERSION:
    latest           Install latest version (default)
    X.Y.Z            Install specific version (e.g., 4.33.0)

\b
EDITION:
    oss              Open-source Liquibase (default)
    secure           Liquibase Secure (Pro before 5.0)

\b
EXAMPLES:
    liquibase-install
    liquibase-install 4.33.0
    liquibase-install 5.0.0 secure --verbose
    DRY_RUN=true liquibase-install latest
"""


def parse_tokens(tokens: Sequence[str]) -> Tuple[str, Edition]:
    """
    Parse positional tokens in any order

    The first version selector and the first edition win; later ones are
    ignored.

    Returns:
        (version selector, edition), defaulting to ('latest', oss)

    Raises:
        UnknownArgumentError: for any other token
    """
    selector: Optional[str] = None
    edition: Optional[Edition] = None

    for token in tokens:
        if token == LATEST or is_valid_version(token):
            selector = selector or token
        elif token in EDITIONS:
            edition = edition or EDITIONS[token]
        else:
            raise UnknownArgumentError(
                f"Unknown argument: {token}",
                hint="For version numbers, use format X.Y.Z (e.g., 4.33.0); "
                     "editions are 'oss' or 'secure'. Run with --help for usage.",
            )

    return selector or LATEST, edition or Edition.OSS


def report_error(error: InstallerError, reporter: Reporter):
    for line in error.message.splitlines():
        reporter.error(line)
    if error.hint:
        reporter.error(error.hint)


def print_summary(result: InstallResult, reporter: Reporter):
    if result.dry_run:
        reporter.success("Dry run complete, nothing was changed")
        return

    reporter.console.print()
    reporter.success("Liquibase installation completed successfully!")
    reporter.console.print()
    reporter.info("Next steps:")
    step = 1
    if result.profile_updated:
        reporter.info(f"  {step}. Restart your terminal or run 'source {result.profile_updated}'")
        step += 1
    reporter.info(f"  {step}. Run 'liquibase --version' to verify installation")
    reporter.info(f"  {step + 1}. Visit https://docs.liquibase.com/start/home.html to get started")
    reporter.console.print()


@click.command(
    context_settings={'help_option_names': ['-h', '--help'], 'ignore_unknown_options': True},
    epilog=HELP_EPILOG,
)
@click.argument('tokens', nargs=-1, type=click.UNPROCESSED)
@click.option('-v', '--verbose', is_flag=True, help='Enable verbose output')
@click.option('--dry-run', is_flag=True,
              help='Show what would be installed without actually installing')
@click.option('--prefix', type=click.Path(file_okay=False, path_type=Path), default=None,
              help='Install prefix (default: /usr/local if writable, else ~/.local)')
@click.option('--checksum', default=None, metavar='SHA256',
              help='Expected SHA-256 of the release archive')
@click.option('--use-package-manager', is_flag=True,
              help='Try brew/apt/yum/dnf/sdkman/choco before downloading (oss only)')
@click.option('--no-path-update', is_flag=True, help='Do not modify shell startup files')
@click.option('--no-verify', is_flag=True, help='Skip running liquibase --version afterwards')
@click.version_option(__version__, '--version', prog_name='liquibase-install')
def cli(tokens, verbose, dry_run, prefix, checksum, use_package_manager, no_path_update, no_verify):
    """Liquibase Universal Installer

    Install Liquibase with automatic platform detection.
    """
    base = ConfigManager.load_config()
    reporter = configure_reporter(verbose=verbose or base.verbose)

    reporter.info("Liquibase Universal Installer")
    reporter.info("==============================")

    try:
        selector, edition = parse_tokens(tokens)
        config = replace(
            base,
            version_selector=selector,
            edition=edition,
            verbose=reporter.verbose_enabled,
            dry_run=base.dry_run or dry_run,
            checksum=checksum or base.checksum,
            prefix=prefix.expanduser() if prefix else base.prefix,
            use_package_manager=use_package_manager or base.use_package_manager,
            update_path=base.update_path and not no_path_update,
            verify=base.verify and not no_verify,
        )
        result = run_install(config, reporter=reporter)
    except InstallerError as e:
        report_error(e, reporter)
        sys.exit(1)

    print_summary(result, reporter)


def main():
    # Usage errors exit 1 like every other failure (click would use 2)
    try:
        cli.main(prog_name='liquibase-install', standalone_mode=False)
    except click.ClickException as e:
        e.show()
        sys.exit(1)
    except click.Abort:
        sys.exit(1)


if __name__ == '__main__':
    main()
