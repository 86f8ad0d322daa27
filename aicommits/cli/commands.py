"""CLI Commands"""

import getpass
import os
import sys

from aicommits.config import (
    Config, ConfigManager, ENV_OVERRIDES, MAX_GENERATE, load_config, load_saved_config, save_config, get_config_path,
)
from aicommits.discovery import discover_models, select_default_model
from aicommits.git import GitAnalyzer, GitError, install_hook, uninstall_hook
from aicommits.llm import get_client, LLMClient, LLMError
from aicommits.output import bold, dim, info, print_success, print_error, print_warning, Spinner


PROVIDER_CHOICES = [
    ('openai', 'OpenAI or any OpenAI-compatible server (API key)'),
    ('claude', 'Anthropic Claude (API key)'),
    ('ollama', 'Ollama (free, local)'),
]


def _mask(secret: str | None) -> str:
    if not secret:
        return 'not set'
    return f"{secret[:4]}...{secret[-4:]}" if len(secret) > 12 else '****'


def display_config() -> int:
    """Display current configuration."""
    config = load_config()
    config_path = get_config_path()
    filename = ConfigManager.CONFIG_FILENAME

    print(f"\n{bold('Current Configuration')}\n")

    if config_path:
        print(f"  {dim('Loaded from:')} {config_path}")
    else:
        print(f"  {dim('Loaded from:')} defaults (no {filename} found)")

    overrides = [var for var in ENV_OVERRIDES if os.environ.get(var)]
    if overrides:
        print(f"  {dim('Environment overrides:')}")
        for var in overrides:
            value = os.environ[var]
            print(f"    {var}={_mask(value) if var == 'AIC_API_KEY' else value}")

    print()
    print(f"  {bold('Settings:')}")
    print(f"    provider:      {info(config.provider)}")
    print(f"    model:         {info(config.model or 'auto')}")
    print(f"    api_key:       {info(_mask(config.api_key))}")
    print(f"    base_url:      {info(config.base_url or 'default')}")
    print(f"    locale:        {info(config.locale)}")
    print(f"    max_length:    {info(str(config.max_length))}")
    print(f"    type:          {info(config.type or 'plain')}")
    print(f"    generate:      {info(str(config.generate))}")
    print(f"    context_lines: {info(str(config.context_lines))}")
    print(f"    exclude:       {info(', '.join(config.exclude) or 'none')}")

    print(f"\n  {dim('Config locations:')}")
    print(f"    Local:  {filename} (in current directory)")
    print(f"    Global: ~/{filename}")
    print(f"\n  {dim('Run')} aic --setup {dim('to configure')}\n")

    return 0


def _client_for(config: Config) -> LLMClient:
    return get_client(provider=config.provider, model=config.model,
                      api_key=config.api_key, base_url=config.base_url)


def run_list_models(config: Config) -> int:
    """Print the chat models the configured provider offers."""
    try:
        with Spinner("Fetching models"):
            models = discover_models(_client_for(config))
    except LLMError as e:
        print_error(str(e))
        return 1

    for model in models:
        marker = info('*') if model.id == config.model else ' '
        label = f" {dim(model.label)}" if model.label != model.id else ''
        print(f"{marker} {model.id}{label}")
    return 0


def _ask(prompt: str, default: str = '') -> str:
    suffix = f" [{default}]" if default else ''
    return input(f"{prompt}{suffix}: ").strip() or default


def _pick_model(config: Config) -> str | None:
    """Offer the discovered models; falls back to free text when listing fails."""
    try:
        with Spinner("Fetching models"):
            models = discover_models(_client_for(config))
    except LLMError as e:
        print_warning(f"Could not list models: {e}")
        return _ask("Model (Enter for provider default)", config.model or '') or None

    default = select_default_model(models, config.model)
    print()
    for i, model in enumerate(models, 1):
        print(f"  {i}. {model.label}")
    print()

    while True:
        choice = _ask("Select model", default.id)
        if choice.isdigit() and 1 <= int(choice) <= len(models):
            return models[int(choice) - 1].id
        if any(m.id == choice for m in models):
            return choice
        print(f"Enter 1-{len(models)} or a model id")


def run_setup() -> int:
    """Interactive setup wizard."""
    display_config()
    print(f"{bold('Setup Wizard')}\n")
    config = load_config()

    print("Choose provider:\n")
    for i, (_, description) in enumerate(PROVIDER_CHOICES, 1):
        print(f"  {i}. {description}")
    print()

    try:
        while True:
            choice = input(f"Select [1-{len(PROVIDER_CHOICES)}]: ").strip()
            if choice.isdigit() and 1 <= int(choice) <= len(PROVIDER_CHOICES):
                config.provider = PROVIDER_CHOICES[int(choice) - 1][0]
                break

        if config.provider != 'ollama':
            key = getpass.getpass(f"API key (Enter to keep {_mask(config.api_key)}): ").strip()
            if key:
                config.api_key = key
        config.base_url = _ask("Base URL (Enter for default)", config.base_url or '') or None

        config.model = _pick_model(config)

        config.locale = _ask("Message language", config.locale)
        print("\nCommit message format:\n")
        print("  1. plain - free-form subject (default)")
        print("  2. conventional - type(scope): subject\n")
        config.type = 'conventional' if _ask("Select [1/2]", '2' if config.type else '1') == '2' else ''

        count = _ask(f"Candidates per run (1-{MAX_GENERATE})", str(config.generate))
        config.generate = int(count) if count.isdigit() else config.generate
    except (KeyboardInterrupt, EOFError):
        print()
        print_error("Setup cancelled")
        return 1

    for warning_text in config.validate():
        print_warning(warning_text)

    path = save_config(config, global_config=True)
    print_success(f"Saved to {path}")
    return 0


def run_install_completion() -> int:
    """Install shell tab completion."""
    shell = os.environ.get('SHELL', '')

    print(f"\n{bold('Tab Completion Setup')}\n")

    if 'zsh' in shell or 'bash' in shell:
        rc_name = '~/.zshrc' if 'zsh' in shell else '~/.bashrc'
        line = 'eval "$(register-python-argcomplete aic)"'
        print(f"Add this line to {dim(os.path.expanduser(rc_name))}:\n")
        print(f"  {line}\n")
        print(f"Then run: {dim(f'source {rc_name}')}")
    elif sys.platform == 'win32':
        print("For PowerShell, run:\n")
        print("  register-python-argcomplete --shell powershell aic | Out-String | Invoke-Expression\n")
        print("To make it permanent, add it to your $PROFILE.")
    else:
        print("Run one of these based on your shell:\n")
        print(f"  {dim('# Bash/Zsh')}")
        print('  eval "$(register-python-argcomplete aic)"\n')
        print(f"  {dim('# PowerShell')}")
        print("  register-python-argcomplete --shell powershell aic | Out-String | Invoke-Expression\n")
        print(f"  {dim('# Fish')}")
        print("  register-python-argcomplete --shell fish aic | source")

    print(f"\n{dim('After setup, press TAB to autocomplete flags.')}")
    return 0


def _shown(key: str, value) -> str:
    if key == 'api_key':
        return _mask(value)
    if isinstance(value, list):
        return ','.join(value)
    return '' if value is None else str(value)


def run_config_get(keys: list[str]) -> int:
    """Print effective values, one KEY=VALUE per line."""
    config = load_config()
    for key in keys:
        if key not in Config.__dataclass_fields__:
            print_error(f"Unknown config key '{key}'")
            return 1
        print(f"{key}={_shown(key, getattr(config, key))}")
    return 0


def run_config_set(assignments: list[str], local: bool = False) -> int:
    """Write KEY=VALUE pairs to the saved config. Nothing is written if any pair is invalid."""
    config = load_saved_config(global_config=not local)
    keys = []
    for assignment in assignments:
        key, sep, value = assignment.partition('=')
        if not sep:
            print_error(f"Expected KEY=VALUE, got '{assignment}'")
            return 1
        try:
            config.set_value(key.strip(), value.strip())
        except (KeyError, ValueError) as e:
            print_error(e.args[0])
            return 1
        keys.append(key.strip())

    problems = config.validate()
    if problems:
        for problem in problems:
            print_error(problem)
        return 1

    path = save_config(config, global_config=not local)
    for key in keys:
        print_success(f"{key}={_shown(key, getattr(config, key))}")
    print(dim(f"Saved to {path}"))
    return 0


def run_ignore(add: str | None = None, remove: str | None = None) -> int:
    """List, add or remove the exclude patterns saved in the global config."""
    config = load_saved_config(global_config=True)

    if add:
        if add in config.exclude:
            print(f"'{add}' is already in the ignore list.")
            return 0
        config.exclude.append(add)
        save_config(config, global_config=True)
        print_success(f"Added ignore pattern: {add}")
        return 0

    if remove:
        if remove not in config.exclude:
            print_warning(f"'{remove}' is not in the ignore list.")
            return 0
        config.exclude.remove(remove)
        save_config(config, global_config=True)
        print_success(f"Removed ignore pattern: {remove}")
        return 0

    if not config.exclude:
        print("No ignore patterns configured.")
        return 0
    print(bold("Ignore patterns:"))
    for i, pattern in enumerate(config.exclude, 1):
        print(f"  {i}. {pattern}")
    return 0


def run_install_hook() -> int:
    try:
        path = install_hook(GitAnalyzer().hooks_dir())
    except GitError as e:
        print_error(str(e))
        return 1
    print_success(f"Installed {path}")
    print(dim("Run 'git commit' without -m and the message will be prefilled."))
    return 0


def run_uninstall_hook() -> int:
    try:
        path = uninstall_hook(GitAnalyzer().hooks_dir())
    except GitError as e:
        print_error(str(e))
        return 1
    if path is None:
        print("No aic hook installed.")
    else:
        print_success(f"Removed {path}")
    return 0
