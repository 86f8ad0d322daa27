"""CLI Utility Functions"""

from aicommits.output import dim, format_candidate, print_commit_message
from aicommits.revision import RevisionAction, RevisionSession

ACTION_KEYS = {
    '': RevisionAction.COMMIT,
    'c': RevisionAction.COMMIT,
    'e': RevisionAction.EDIT,
    'r': RevisionAction.REGENERATE,
    'q': RevisionAction.CANCEL,
}


def display_options(options: list[str]) -> int | None:
    """Show numbered candidates and read a selection. None means quit."""
    print()
    for i, opt in enumerate(options, 1):
        print(format_candidate(opt, i))

    print()
    while True:
        try:
            choice = input(f"Select [1-{len(options)}] or (q)uit: ").strip().lower()
        except (KeyboardInterrupt, EOFError):
            return None
        if choice == 'q':
            return None
        try:
            idx = int(choice) - 1
        except ValueError:
            idx = -1
        if 0 <= idx < len(options):
            return idx
        print(f"Enter 1-{len(options)} or q")


def choose_revision_action(session: RevisionSession) -> RevisionAction:
    print_commit_message(session.message, session.body)
    prompt = dim('(c)ommit [Enter], (e)dit, (r)egenerate, (q)uit: ')
    while True:
        try:
            choice = input(f"\n{prompt}").strip().lower()
        except (KeyboardInterrupt, EOFError):
            print()
            return RevisionAction.CANCEL
        if choice in ACTION_KEYS:
            return ACTION_KEYS[choice]
        print("Enter c, e, r or q")


def ask_instruction() -> str | None:
    try:
        return input(dim('  How should the message change? '))
    except (KeyboardInterrupt, EOFError):
        print()
        return None

