"""CLI interface for transgate."""
import logging

import click
import requests
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import load_config
from .errors import TranslatorError
from .languages import LanguageCodec
from .services import get_service_for_engine


@click.command(context_settings=dict(help_option_names=['-h', '--help']))
@click.argument('texts', nargs=-1)
@click.option('-lo', '--target-lang', default=None, help='Target language code')
@click.option('-li', '--source-lang', default='auto', show_default=True, help='Source language code (auto=auto-detect)')
@click.option('-e', '--engine', default=None, help='Engine code (defaults to the configured engine)')
@click.option('-c', '--config', 'config_path', type=click.Path(dir_okay=False), default=None, help='Config file path')
@click.option('--list-languages', is_flag=True, help='List supported language codes and exit')
@click.option('-v', '--verbose', is_flag=True, help='Enable debug logging')
def main(texts, target_lang, source_lang, engine, config_path, list_languages, verbose):
    """transgate - Translate text through a configured backend engine.

    \b
    Example usage:
        transgate "Hello" "World" -lo ja
        transgate "Bonjour" -li fr -lo zh_CN
        transgate --list-languages
    """
    console = Console()
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    if list_languages:
        codec = LanguageCodec()
        table = Table(title="Supported languages")
        table.add_column("Alias")
        table.add_column("Code")
        for alias, code in sorted(codec.aliases().items()):
            table.add_row(alias, code or "(auto-detect)")
        console.print(table)
        return

    if not texts or not target_lang:
        console.print("[bold red]Error:[/bold red] Please specify texts and a target language.")
        console.print('Usage: transgate "Hello" -lo ja')
        raise click.Abort()

    try:
        cfg = load_config(config_path)
        engine = engine or cfg["engine"]
        engine_configs = cfg["engines"].get(engine)
        if engine_configs is None:
            console.print(f"[bold red]Error:[/bold red] No configuration for engine '{engine}'.")
            raise click.Abort()

        is_auto = source_lang.strip().lower() == 'auto'
        service = get_service_for_engine(engine, engine_configs)
        try:
            results = service.translate_batch(
                target_lang,
                list(texts),
                source_lang=None if is_auto else source_lang,
                is_source_auto=is_auto,
            )
        finally:
            service.close()

        for original, translated in zip(texts, results):
            console.print(f"[dim]{escape(original)}[/dim] → {escape(translated)}")
        console.print()
        console.print(f"[green]✓ Translated {len(results)} text(s) with {service.name()}[/green]")

    except (TranslatorError, ValueError, requests.RequestException) as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise click.Abort()


if __name__ == '__main__':
    main()
