"""
aicommits

AI-generated commit messages and pull request descriptions from staged git changes.
"""

__version__ = "1.0.0"

# Conventional commit types - single source of truth
# Used by: prompts/builder.py (type-to-description JSON), output (colors)
COMMIT_TYPES = {
    'build': 'Changes that affect the build system or external dependencies',
    'chore': "Other changes that don't modify src or test files",
    'ci': 'Changes to our CI configuration files and scripts',
    'docs': 'Documentation only changes',
    'feat': 'A new feature',
    'fix': 'A bug fix',
    'perf': 'A code change that improves performance',
    'refactor': 'A code change that neither fixes a bug nor adds a feature',
    'revert': 'Reverts a previous commit',
    'style': 'Changes that do not affect the meaning of the code (white-space, formatting, missing semi-colons, etc)',
    'test': 'Adding missing tests or correcting existing tests',
}

COMMIT_TYPE_NAMES = list(COMMIT_TYPES.keys())

# Values accepted for the `type` setting. Empty string means free-form subjects.
COMMIT_STYLES = ('', 'conventional')
