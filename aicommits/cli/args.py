"""CLI Argument Parsing"""

import argparse
import argcomplete

from aicommits import COMMIT_STYLES, __version__
from aicommits.config import MAX_GENERATE
from aicommits.llm import PROVIDERS
from aicommits.revision import BOUNDED_ROUNDS


def _generate_count(value: str) -> int:
    count = int(value)
    if not 1 <= count <= MAX_GENERATE:
        raise argparse.ArgumentTypeError(f"must be between 1 and {MAX_GENERATE}")
    return count


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='aic',
        description='Generate commit messages and pull request descriptions from staged changes',
        epilog='Example: git add -p && aic'
    )

    parser.add_argument('-v', '--version', action='version', version=f'%(prog)s {__version__}')

    # Generation options
    parser.add_argument('-g', '--generate', type=_generate_count, metavar='N', help=f'Number of candidates to pick from (1-{MAX_GENERATE})')
    parser.add_argument('-t', '--type', type=str, choices=[s for s in COMMIT_STYLES if s], help='Commit message format')
    parser.add_argument('-l', '--locale', type=str, metavar='LANG', help='Message language, e.g. en, de')
    parser.add_argument('-x', '--exclude', action='append', metavar='PATTERN', help='Exclude files from the diff (repeatable)')
    parser.add_argument('--stream', action='store_true', help='Stream the subject and body as they are generated')
    parser.add_argument('--agent', action='store_true', help='Let the model inspect staged files with tools before writing')

    # Revision options
    parser.add_argument('--max-revisions', type=int, default=BOUNDED_ROUNDS, metavar='N', help=f'Cancel after N review rounds (default: {BOUNDED_ROUNDS})')
    parser.add_argument('--unbounded', action='store_true', help='Allow any number of review rounds')
    parser.add_argument('--dry-run', action='store_true', help='Print the accepted message instead of committing')

    # Pull requests
    parser.add_argument('--pr', action='store_true', help='Generate a pull request title and description')
    parser.add_argument('--base', type=str, metavar='BRANCH', help='PR base branch (default: repository default branch)')
    parser.add_argument('--head', type=str, metavar='BRANCH', help='PR head branch (default: current branch)')

    # LLM options
    parser.add_argument('-p', '--provider', type=str, choices=sorted(PROVIDERS), help='LLM provider')
    parser.add_argument('-m', '--model', type=str, metavar='MODEL', help='Model name')
    parser.add_argument('--list-models', action='store_true', help='List the chat models the provider offers')

    # Output options
    parser.add_argument('-V', '--verbose', action='count', default=0, help='More log output (repeat for debug)')

    # Setup/config
    parser.add_argument('--setup', action='store_true', help='Configure provider, model and defaults')
    parser.add_argument('--display-config', action='store_true', help='Show current configuration')
    parser.add_argument('--install-completion', action='store_true', help='Install shell tab completion')
    parser.add_argument('--config-get', nargs='+', metavar='KEY', help='Print configuration values')
    parser.add_argument('--config-set', nargs='+', metavar='KEY=VALUE', help='Save configuration values (global unless --local)')
    parser.add_argument('--local', action='store_true', help='With --config-set, write the config in the current directory')

    # Ignore patterns
    parser.add_argument('--ignore-list', action='store_true', help='List saved exclude patterns')
    parser.add_argument('--ignore-add', metavar='PATTERN', help='Always exclude files matching PATTERN')
    parser.add_argument('--ignore-remove', metavar='PATTERN', help='Stop excluding PATTERN')

    # Git hook
    parser.add_argument('--install-hook', action='store_true', help='Install the prepare-commit-msg hook in this repository')
    parser.add_argument('--uninstall-hook', action='store_true', help='Remove the prepare-commit-msg hook')
    parser.add_argument('--prepare-commit-msg', nargs='+', metavar='ARG', help='Run as the prepare-commit-msg hook (FILE [SOURCE [SHA]])')

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = build_parser()
    argcomplete.autocomplete(parser)
    args = parser.parse_args(argv)
    if args.max_revisions < 1:
        parser.error("--max-revisions must be at least 1")
    if args.agent and args.stream:
        parser.error("--agent cannot be combined with --stream")
    if args.prepare_commit_msg and len(args.prepare_commit_msg) > 3:
        parser.error("--prepare-commit-msg takes FILE [SOURCE [SHA]]")
    return args
