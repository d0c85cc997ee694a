"""
Main Application

Orchestrates the core and repository libraries behind the command line.
"""

import argparse
import json
import logging
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Dict, Any, List, Optional

# Core libraries
from .core import CertificateAuth, ConfigManager, setup_logging
from .core.constants import ErrorMessages, FileConstants, RepositoryConstants
from .core.exceptions import ConfigurationError, DisaPatchError
from .core.protocols import AuthProvider, ConfigProvider, HelpProvider, RepositoryProvider
from .core.utils import validate_base_url

# Repository libraries
from .repository import RepositoryService

from .help_manager import HelpManager

logger = logging.getLogger(__name__)


class DisaPatchManager:
    """Main application orchestrator for the DISA Patch tool"""

    def __init__(
        self,
        config_provider: Optional[ConfigProvider] = None,
        help_provider: Optional[HelpProvider] = None,
        auth_provider: Optional[AuthProvider] = None,
        repository_provider: Optional[RepositoryProvider] = None,
        skip_tls: bool = False,
        debug: bool = False
    ):
        """
        Initialize DISA Patch manager with dependency injection

        Args:
            config_provider: Configuration provider (defaults to ConfigManager)
            help_provider: Help manager (defaults to HelpManager)
            auth_provider: Certificate provider (built from configuration when omitted)
            repository_provider: Repository service (built from configuration when omitted)
            skip_tls: Whether to skip verification of the portal certificate
            debug: Enable debug output
        """
        self.skip_tls = skip_tls
        self.debug = debug

        self.config_manager = config_provider or ConfigManager()
        self.help_manager = help_provider or HelpManager()
        self.auth = auth_provider
        self.repository: Optional[RepositoryProvider] = repository_provider

    def load_config(self, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from file

        Args:
            config_path: Path to configuration file

        Returns:
            Dict containing configuration data
        """
        return self.config_manager.load_config(config_path)

    def generate_config(self, output_dir: str = None) -> str:
        """
        Generate configuration template

        Args:
            output_dir: Directory to save template (optional)

        Returns:
            str: Path to generated template file
        """
        return self.config_manager.generate_config_template(output_dir)

    def _build_repository(self, cert_store: Optional[str] = None) -> RepositoryProvider:
        """Create the certificate provider and repository service from configuration"""
        get = self.config_manager.get_value
        base_url = get('portal.base_url')
        validate_base_url(base_url)

        if self.auth is None:
            self.auth = CertificateAuth(
                cert_store=cert_store or get('auth.cert_store'),
                default_thumbprint=get('auth.thumbprint'),
                verify_tls=get('portal.verify_tls', True) and not self.skip_tls
            )

        return RepositoryService(
            self.auth,
            base_url=base_url,
            timeout=get('portal.timeout'),
            retries=get('portal.retries'),
            retry_delay=get('portal.retry_delay'),
            row_cache_key=get('enumeration.row_cache_key')
        )

    def connect(self, repository_name: Optional[str] = None, thumbprint: Optional[str] = None,
                cert_store: Optional[str] = None) -> None:
        """
        Authenticate to the portal and select a repository

        Raises:
            DisaPatchError: If the connection cannot be established
        """
        if self.repository is None:
            self.repository = self._build_repository(cert_store)

        repository_name = repository_name or self.config_manager.get_value('enumeration.repository')
        self.repository.connect(repository_name, thumbprint)

    def list_repositories(self) -> int:
        """
        Print the repository table

        Returns:
            int: Exit code
        """
        data = [
            {"name": repository.name, "id": int(repository)}
            for repository in RepositoryConstants.Repository
        ]
        self._print_json_output({"type": "repositories", "data": data, "total": len(data)})
        return 0

    def list_files(self, selection: Dict[str, Any]) -> int:
        """
        Enumerate files and print them as JSON

        Args:
            selection: Keyword arguments for RepositoryService.get_files

        Returns:
            int: Exit code (0 for success, 1 for error)
        """
        try:
            records = [record.to_dict() for record in self.repository.get_files(**selection)]
        except DisaPatchError as e:
            logger.error(f"Failed to list files: {e}")
            print(f"Error: {e}", file=sys.stderr)
            return 1

        self._print_json_output({
            "repository": self.repository.session.repository_name,
            "total": len(records),
            "files": records
        })
        if self.debug:
            logger.debug(f"Statistics: {self.repository.get_stats()}")
        return 0

    def download_files(self, selection: Dict[str, Any], output_dir: str, force: bool = False) -> int:
        """
        Download every enumerated file sequentially

        Args:
            selection: Keyword arguments for RepositoryService.get_files
            output_dir: Target directory
            force: Re-download files that are already present

        Returns:
            int: Exit code (0 if every file is present afterwards, 1 otherwise)
        """
        directory = Path(output_dir)
        downloaded: List[str] = []
        skipped: List[str] = []
        errors: List[Dict[str, str]] = []

        try:
            for record in self.repository.get_files(**selection):
                if not force and self.repository.is_downloaded(record, directory):
                    skipped.append(record.filename)
                    continue
                try:
                    self.repository.save_file(record, directory, force=force)
                    downloaded.append(record.filename)
                except (DisaPatchError, OSError) as e:
                    logger.warning(f"Failed to download {record.filename}: {e}")
                    errors.append({"file": record.filename, "error": str(e)})
        except DisaPatchError as e:
            logger.error(f"Failed to list files: {e}")
            print(f"Error: {e}", file=sys.stderr)
            return 1

        self._print_json_output({
            "output": str(directory),
            "downloaded": downloaded,
            "skipped": skipped,
            "errors": errors
        })
        return 1 if errors else 0

    def close(self) -> None:
        """Close the repository session"""
        if self.repository is not None:
            self.repository.close()

    def _print_json_output(self, data: Dict[str, Any]) -> None:
        """
        Print JSON output with proper handling for large data

        Args:
            data: Dictionary to output as JSON
        """
        json_str = json.dumps(data, indent=2, separators=(',', ': '), ensure_ascii=False)

        # Large listings go straight to the stream
        if len(json_str) > 1000000:
            sys.stdout.write(json_str)
            sys.stdout.write('\n')
            sys.stdout.flush()
        else:
            print(json_str)


def create_disa_patch_manager(config_provider: Optional[ConfigProvider] = None,
                              skip_tls: bool = False, debug: bool = False) -> DisaPatchManager:
    """
    Factory function to create DisaPatchManager with default dependencies

    Args:
        config_provider: Loaded configuration (defaults to an empty ConfigManager)
        skip_tls: Whether to skip verification of the portal certificate
        debug: Enable debug output

    Returns:
        DisaPatchManager: Configured instance
    """
    return DisaPatchManager(config_provider=config_provider, skip_tls=skip_tls, debug=debug)


def parse_date(value: str) -> date:
    """argparse type for YYYY-MM-DD dates"""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date '{value}', expected YYYY-MM-DD")


def positive_int(value: str) -> int:
    """argparse type for positive integers"""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid number '{value}'")
    if number < 1:
        raise argparse.ArgumentTypeError(f"Value must be at least 1, got {number}")
    return number


def create_argument_parser():
    """
    Create and configure argument parser with subcommands.

    Uses parent parsers to eliminate redundancy across commands.
    """
    # Common parser: arguments shared by ALL commands
    common_parser = argparse.ArgumentParser(add_help=False)
    common_parser.add_argument(
        '-h', '--help', action='store_true',
        help='Show help for this command'
    )
    common_parser.add_argument(
        '--debug', action='store_true', help='Enable debug logging'
    )
    common_parser.add_argument(
        '--examples', action='store_true',
        help='Show usage examples for this command'
    )
    common_parser.add_argument('--config', help='Configuration file path')

    # Auth parser: arguments shared by commands that talk to the portal
    auth_parser = argparse.ArgumentParser(add_help=False)
    auth_parser.add_argument('--thumbprint', help='Client certificate thumbprint')
    auth_parser.add_argument('--cert-store', help='Directory of PEM client certificates')
    auth_parser.add_argument(
        '--skip-tls', action='store_true',
        help='Skip verification of the portal certificate'
    )

    # Selection parser: which files to enumerate
    selection_parser = argparse.ArgumentParser(add_help=False)
    selection_parser.add_argument(
        '--repository',
        choices=RepositoryConstants.Repository.get_names(),
        help='Repository name'
    )
    selection_parser.add_argument('--since', type=parse_date, help='Only files posted on or after YYYY-MM-DD')
    selection_parser.add_argument('--search', help='Only rows whose title contains this text')
    selection_parser.add_argument('--sort', choices=['title', 'created'], help='Sort column')
    selection_parser.add_argument('--descending', action='store_true', help='Sort descending')
    selection_parser.add_argument('--limit', type=positive_int, help='Number of rows to list')
    selection_parser.add_argument('--page', type=positive_int, default=1, help='Page number')

    # Output parser: arguments shared by commands that write files
    output_parser = argparse.ArgumentParser(add_help=False)
    output_parser.add_argument('--output', help='Output directory')

    parser = argparse.ArgumentParser(
        description='DISA Patch - list and download files from the DISA patch repository portal',
        add_help=False
    )
    parser.add_argument(
        '-h', '--help',
        action='store_true',
        help='Show this help message and exit'
    )
    parser.add_argument(
        '--examples', action='store_true',
        help='Show usage examples for all commands'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    subparsers.add_parser(
        'list-repositories',
        add_help=False,
        parents=[common_parser],
        help='List known repositories',
        description='List the known patch repositories and their collection ids'
    )

    subparsers.add_parser(
        'list-files',
        add_help=False,
        parents=[common_parser, auth_parser, selection_parser],
        help='List downloadable files',
        description='List downloadable files of a repository as JSON'
    )

    download_parser = subparsers.add_parser(
        'download',
        add_help=False,
        parents=[common_parser, auth_parser, selection_parser, output_parser],
        help='Download files',
        description='Download the selected files sequentially'
    )
    download_parser.add_argument(
        '--force', action='store_true', help='Re-download files that are already present'
    )

    config_parser = subparsers.add_parser(
        'generate-config',
        add_help=False,
        parents=[common_parser],
        help='Generate configuration template',
        description='Print or write a configuration template'
    )
    # Separate dest so download.path from a config file never applies here
    config_parser.add_argument('--output', dest='template_dir', help='Directory to write the template to')

    return parser


def handle_examples(command_name: str) -> bool:
    """Handle examples flag for any command. Returns True if examples were shown."""
    HelpManager().show_command_examples(command_name)
    return True


def merge_config_with_args(args, config_manager: ConfigManager) -> None:
    """
    Fill unset command-line arguments from the configuration file.

    Command-line values always take precedence.

    Args:
        args: Parsed command-line arguments object
        config_manager: Configuration with file values merged over defaults
    """
    mapping = {
        'repository': 'enumeration.repository',
        'thumbprint': 'auth.thumbprint',
        'cert_store': 'auth.cert_store',
        'output': 'download.path',
        'force': 'download.force',
        'debug': 'global.debug',
    }

    for arg_name, config_key in mapping.items():
        if not hasattr(args, arg_name):
            continue
        current_value = getattr(args, arg_name)
        if current_value is None or current_value == '' or current_value is False:
            config_value = config_manager.get_value(config_key)
            if config_value is not None:
                setattr(args, arg_name, config_value)


def selection_from_args(args) -> Dict[str, Any]:
    """Keyword arguments for RepositoryService.get_files"""
    return {
        'since': args.since,
        'search': args.search,
        'sort_by': args.sort,
        'descending': args.descending,
        'limit': args.limit,
        'page': args.page,
    }


def handle_list_repositories_command(args, manager: DisaPatchManager) -> int:
    """Handle list-repositories command execution."""
    return manager.list_repositories()


def handle_list_files_command(args, manager: DisaPatchManager) -> int:
    """Handle list-files command execution."""
    manager.connect(args.repository, args.thumbprint, args.cert_store)
    return manager.list_files(selection_from_args(args))


def handle_download_command(args, manager: DisaPatchManager) -> int:
    """Handle download command execution."""
    manager.connect(args.repository, args.thumbprint, args.cert_store)
    return manager.download_files(
        selection_from_args(args),
        args.output or FileConstants.DEFAULT_DOWNLOAD_DIR,
        force=args.force
    )


def handle_generate_config_command(args, manager: DisaPatchManager) -> int:
    """
    Handle generate-config command - stdout by default, file with --output.
    """
    if args.template_dir:
        config_file = manager.generate_config(args.template_dir)
        print(f"✓ Configuration template generated: {config_file}")
    else:
        print(manager.config_manager.get_config_template_content())
    return 0


# Command dispatcher mapping
COMMAND_HANDLERS = {
    'list-repositories': handle_list_repositories_command,
    'list-files': handle_list_files_command,
    'download': handle_download_command,
    'generate-config': handle_generate_config_command,
}


def handle_early_exit_flags(args, argv: List[str]) -> bool:
    """Handle early-exit flags like --help and --examples"""
    if not argv:
        HelpManager().show_help()
        return True

    if getattr(args, 'help', False):
        # Packaged help topic per command
        HelpManager().show_help(args.command)
        return True

    if getattr(args, 'examples', False):
        if args.command:
            return handle_examples(args.command)
        HelpManager().show_examples()
        return True

    return False


def configure_ssl_warnings(skip_tls: bool = False):
    """Configure SSL warnings to show user-friendly message once"""
    if skip_tls:
        logger.warning(ErrorMessages.SSLError.VERIFICATION_DISABLED_WARNING)


def run(argv: Optional[List[str]] = None) -> int:
    """
    Parse arguments and execute a command

    Args:
        argv: Arguments without the program name (defaults to sys.argv[1:])

    Returns:
        int: Exit code
    """
    argv = sys.argv[1:] if argv is None else argv
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if handle_early_exit_flags(args, argv):
        return 0

    if not args.command:
        print("Error: No command specified. Use --help for usage information.", file=sys.stderr)
        return 1

    config_manager = ConfigManager()
    try:
        if getattr(args, 'config', None):
            config_manager.load_config(args.config)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    merge_config_with_args(args, config_manager)

    setup_logging(args.debug)
    skip_tls = getattr(args, 'skip_tls', False)
    configure_ssl_warnings(skip_tls)

    manager = create_disa_patch_manager(config_manager, skip_tls=skip_tls, debug=args.debug)
    handler = COMMAND_HANDLERS[args.command]

    try:
        return handler(args, manager)
    except KeyboardInterrupt:
        print("\nOperation cancelled by user.", file=sys.stderr)
        return 1
    except DisaPatchError as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        manager.close()


def main():
    """Main entry point"""
    sys.exit(run())


if __name__ == "__main__":
    main()
