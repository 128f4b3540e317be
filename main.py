"""Vorlesungsplan-Generator: Haupt-CLI.

Verwendung:
  python main.py config init              Standard-Konfiguration anlegen
  python main.py config show              Konfiguration anzeigen
  python main.py config presets           Presets auflisten
  python main.py generate                 Fake-Daten erzeugen und speichern
  python main.py validate                 Machbarkeits-Check
  python main.py solve                    Vorlesungsplan berechnen
  python main.py status                   Fortschritt eines gespeicherten Plans
  python main.py learning stats           Statistik des Lern-Logs
  python main.py learning export <datei>  Lern-Log exportieren
  python main.py learning import <datei>  Lern-Log importieren
  python main.py learning clear           Lern-Log leeren
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich import box

console = Console()

# Standard-Pfade
DEFAULT_DATA_JSON = Path("output/dataset.json")
DEFAULT_RESULT_JSON = Path("output/schedule.json")
DEFAULT_LEARNING_JSON = Path("output/learning.json")


def _load_settings_or_abort(config_path: Optional[str], preset: Optional[str]):
    """Lädt die Konfiguration (Datei oder Preset) oder bricht mit Fehlermeldung ab."""
    from config.manager import ConfigManager
    mgr = ConfigManager()
    try:
        if preset:
            return mgr.get_preset(preset)
        if config_path:
            return mgr.load(Path(config_path))
        if mgr.DEFAULT_CONFIG.exists():
            return mgr.load()
        return mgr.get_default()
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)


def _load_dataset_or_abort(json_path: str):
    from models.dataset import SchedulingDataset

    p = Path(json_path)
    if not p.exists():
        console.print(
            f"[red]Keine Datendatei gefunden: {p}[/red]\n"
            "Verwenden Sie zunächst [bold]python main.py generate[/bold]."
        )
        sys.exit(1)
    console.print(f"[bold]Lade Datensatz:[/bold] {p}")
    return SchedulingDataset.load_json(p)


# ─── CONFIG ───────────────────────────────────────────────────────────────────

@click.group("config")
def cmd_config():
    """Konfiguration anzeigen oder anlegen."""


@cmd_config.command("init")
@click.option("--preset", default="default", help="Ausgangs-Preset.")
@click.option("--force", is_flag=True, default=False, help="Bestehende Datei überschreiben.")
def config_init(preset: str, force: bool):
    """Legt config/scheduler_config.yaml aus einem Preset an."""
    from config.manager import ConfigManager
    mgr = ConfigManager()
    if mgr.DEFAULT_CONFIG.exists() and not force:
        console.print(
            f"[yellow]{mgr.DEFAULT_CONFIG} existiert bereits.[/yellow] "
            "Mit [bold]--force[/bold] überschreiben."
        )
        return
    try:
        settings = mgr.get_preset(preset)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    mgr.save(settings)


@cmd_config.command("show")
@click.option("--config", "config_path", default=None, help="Pfad zur YAML-Konfiguration.")
@click.option("--preset", default=None, help="Preset statt Datei anzeigen.")
def config_show(config_path: Optional[str], preset: Optional[str]):
    """Zeigt die aktuelle Konfiguration an."""
    settings = _load_settings_or_abort(config_path, preset)

    tg = settings.time_grid
    console.print(Panel(
        f"[bold]Tage:[/bold] {', '.join(tg.days)}\n"
        f"[bold]Zeitraum:[/bold] {tg.day_start}–{tg.day_end}, "
        f"Blocklänge {tg.slot_duration_minutes} min\n"
        f"[bold]Mittagspause:[/bold] {tg.lunch_start}–{tg.lunch_end}",
        title="Zeitraster",
        border_style="cyan",
    ))

    table = Table(title="Engine-Einstellungen", box=box.ROUNDED)
    table.add_column("Abschnitt", style="bold")
    table.add_column("Feld")
    table.add_column("Wert", justify="right")
    for section, values in settings.model_dump(exclude={"time_grid"}).items():
        for i, (key, value) in enumerate(values.items()):
            table.add_row(section if i == 0 else "", key, str(value))
    console.print(table)


@cmd_config.command("presets")
def config_presets():
    """Listet alle verfügbaren Presets auf."""
    from config.manager import ConfigManager
    mgr = ConfigManager()

    table = Table(title="Presets", box=box.ROUNDED)
    table.add_column("Name", style="bold")
    table.add_column("Iterationen", justify="right")
    table.add_column("Zeitlimit", justify="right")
    table.add_column("Annealing")
    for name in mgr.list_presets():
        s = mgr.get_preset(name)
        table.add_row(
            name,
            str(s.hill_climbing.iterations),
            "kein Limit" if s.performance.timeout_ms is None else f"{s.performance.timeout_ms / 1000:.0f}s",
            "ja" if s.features.enable_simulated_annealing else "nein",
        )
    console.print(table)


# ─── GENERATE ─────────────────────────────────────────────────────────────────

@click.command("generate")
@click.option("--seed", default=42, help="Zufalls-Seed für reproduzierbare Daten.")
@click.option("--courses", "num_courses", default=24, help="Anzahl der Kurse.")
@click.option("--json-path", default=str(DEFAULT_DATA_JSON), help="Pfad für JSON-Export.")
@click.option("--validate/--no-validate", "run_validate", default=True,
              help="Machbarkeits-Check nach Generierung.")
def cmd_generate(seed: int, num_courses: int, json_path: str, run_validate: bool):
    """Erzeugt Testdaten (Kurse und Räume) und speichert sie als JSON."""
    from data.fake_data import FakeDataGenerator

    settings = _load_settings_or_abort(None, None)
    console.print("[bold]Testdaten werden generiert...[/bold]")
    gen = FakeDataGenerator(settings, seed=seed, num_courses=num_courses)
    data = gen.generate()
    gen.print_summary(data)
    console.print(f"\n[dim]{data.summary()}[/dim]")

    if run_validate:
        data.validate_feasibility().print_rich()

    out_path = Path(json_path)
    data.save_json(out_path)
    console.print(f"[green]✓[/green] JSON gespeichert: {out_path}")


# ─── VALIDATE ─────────────────────────────────────────────────────────────────

@click.command("validate")
@click.option("--json-path", default=str(DEFAULT_DATA_JSON),
              help="Pfad zur gespeicherten JSON-Datei.")
def cmd_validate(json_path: str):
    """Führt einen Machbarkeits-Check auf dem Datensatz durch."""
    data = _load_dataset_or_abort(json_path)
    console.print(f"\n{data.summary()}\n")
    report = data.validate_feasibility()
    report.print_rich()
    sys.exit(0 if report.is_feasible else 1)


# ─── SOLVE ────────────────────────────────────────────────────────────────────

@click.command("solve")
@click.option("--json-path", default=str(DEFAULT_DATA_JSON), help="Eingabe-Datensatz.")
@click.option("--output", "-o", default=str(DEFAULT_RESULT_JSON), help="Ausgabe-Datei.")
@click.option("--config", "config_path", default=None, help="YAML-Konfiguration.")
@click.option("--preset", default=None, help="Preset (default, fast, quality).")
@click.option("--seed", default=None, type=int, help="Zufalls-Seed der lokalen Suche.")
@click.option("--learn/--no-learn", default=True,
              help="Gelernte Parameter nutzen und Lauf protokollieren.")
@click.option("--learning-path", default=str(DEFAULT_LEARNING_JSON), help="Lern-Log.")
def cmd_solve(json_path: str, output: str, config_path: Optional[str],
              preset: Optional[str], seed: Optional[int], learn: bool, learning_path: str):
    """Berechnet den Vorlesungsplan."""
    from analysis.quality_report import QualityAnalyzer
    from analysis.solution_validator import SolutionValidator
    from config.manager import ConfigManager
    from learning.store import LearningStore
    from solver.errors import ImportFailure, UnknownReferenceError
    from solver.scheduler import SchedulingEngine

    data = _load_dataset_or_abort(json_path)
    if config_path or preset:
        settings = _load_settings_or_abort(config_path, preset)
    else:
        settings = data.settings

    store = None
    if learn:
        try:
            store = LearningStore.load(Path(learning_path))
        except ImportFailure as e:
            console.print(f"[yellow]Lern-Log ignoriert: {e}[/yellow]")
            store = LearningStore()
        learned = store.learn_optimal_parameters(data.courses, data.classrooms)
        if learned:
            settings = ConfigManager().merge(learned, base=settings)
            console.print("[cyan]Gelernte Parameter übernommen.[/cyan]")

    def progress(state, percent, message):
        logging.getLogger("solver").debug(f"[{state.value}] {percent:5.1f}% {message}")

    engine = SchedulingEngine(
        data.courses, data.classrooms, settings, seed=seed, progress_callback=progress,
    )
    try:
        with console.status("[bold]Vorlesungsplan wird berechnet...[/bold]"):
            result = engine.run()
    except UnknownReferenceError as e:
        console.print(f"[red bold]Abbruch:[/red bold] {e}")
        sys.exit(1)

    color = "green" if result.perfect else ("yellow" if result.success else "red")
    console.print(Panel(
        f"[{color}]{result.message}[/{color}]\n"
        f"Erfolgsquote: {result.success_rate:.1%} | Score: {result.score:.1f} | "
        f"Dauer: {result.duration_ms / 1000:.1f}s",
        title="Ergebnis",
        border_style=color,
    ))
    for warning in result.warnings:
        console.print(f"  [yellow]• {warning}[/yellow]")

    if result.unscheduled:
        table = Table(title="Nicht eingeplante Kurse", box=box.ROUNDED)
        table.add_column("Kurs", style="bold")
        table.add_column("Name")
        table.add_column("Teilnehmer", justify="right")
        table.add_column("Grund")
        for u in result.unscheduled:
            table.add_row(u.id, u.name, str(u.student_count), u.failed_sessions[0].detail)
        console.print(table)

    SolutionValidator().validate(result, data.courses, data.classrooms).print_rich()
    analyzer = QualityAnalyzer(days=settings.time_grid.days)
    analyzer.print_rich(analyzer.analyze(result, data.courses, data.classrooms))

    result.save_json(Path(output))
    console.print(f"[green]✓[/green] Plan gespeichert: {output}")

    if store is not None:
        store.record(settings, data.courses, data.classrooms, result.schedule,
                     result.duration_ms, result.metrics)
        store.save(Path(learning_path))


# ─── STATUS ───────────────────────────────────────────────────────────────────

@click.command("status")
@click.option("--json-path", default=str(DEFAULT_DATA_JSON), help="Eingabe-Datensatz.")
@click.option("--result", "result_path", default=str(DEFAULT_RESULT_JSON),
              help="Gespeicherter Plan.")
def cmd_status(json_path: str, result_path: str):
    """Zeigt den Einplanungsstand eines gespeicherten Plans."""
    from analysis.status import schedule_status
    from solver.scheduler import SchedulerResult

    data = _load_dataset_or_abort(json_path)
    try:
        result = SchedulerResult.load_json(Path(result_path))
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    status = schedule_status(data.courses, result.schedule)
    console.print(Panel(
        f"Aktive Kurse: {status.total_active_courses}\n"
        f"Sitzungsstunden: {status.scheduled_sessions}/{status.total_active_sessions}\n"
        f"[bold]Fortschritt: {status.completion_percentage:.1f}%[/bold]",
        title="Status",
        border_style="cyan",
    ))


# ─── LEARNING ─────────────────────────────────────────────────────────────────

@click.group("learning")
@click.option("--path", "learning_path", default=str(DEFAULT_LEARNING_JSON),
              help="Pfad zum Lern-Log.")
@click.pass_context
def cmd_learning(ctx, learning_path: str):
    """Lern-Log vergangener Läufe verwalten."""
    ctx.obj = Path(learning_path)


@cmd_learning.command("stats")
@click.pass_obj
def learning_stats(path: Path):
    """Zeigt die Statistik des Lern-Logs."""
    from learning.store import LearningStore

    stats = LearningStore.load(path).stats()
    table = Table(title="Lern-Log", box=box.ROUNDED)
    table.add_column("Kennzahl", style="bold")
    table.add_column("Wert", justify="right")
    table.add_row("Läufe", str(stats.total_records))
    table.add_row("Ø Erfolgsquote", f"{stats.avg_success_rate:.1%}")
    table.add_row("Beste Erfolgsquote", f"{stats.best_success_rate:.1%}")
    table.add_row("Ø Dauer", f"{stats.avg_duration_ms / 1000:.1f}s")
    console.print(table)


@cmd_learning.command("export")
@click.argument("datei", type=click.Path(path_type=Path))
@click.pass_obj
def learning_export(path: Path, datei: Path):
    """Exportiert das Lern-Log als JSON."""
    from learning.store import LearningStore

    store = LearningStore.load(path)
    datei.parent.mkdir(parents=True, exist_ok=True)
    datei.write_text(store.export_to_json(), encoding="utf-8")
    console.print(f"[green]✓[/green] {len(store)} Läufe exportiert: {datei}")


@cmd_learning.command("import")
@click.argument("datei", type=click.Path(exists=True, path_type=Path))
@click.pass_obj
def learning_import(path: Path, datei: Path):
    """Ersetzt das Lern-Log durch den Inhalt einer JSON-Datei."""
    from learning.store import LearningStore
    from solver.errors import ImportFailure

    store = LearningStore()
    try:
        count = store.import_from_json(datei.read_text(encoding="utf-8"))
    except ImportFailure as e:
        console.print(f"[red bold]Import fehlgeschlagen:[/red bold] {e}")
        sys.exit(1)
    store.save(path)
    console.print(f"[green]✓[/green] {count} Läufe importiert.")


@cmd_learning.command("clear")
@click.confirmation_option(prompt="Lern-Log wirklich leeren?")
@click.pass_obj
def learning_clear(path: Path):
    """Leert das Lern-Log."""
    from learning.store import LearningStore

    store = LearningStore.load(path)
    store.clear()
    store.save(path)
    console.print("[green]✓[/green] Lern-Log geleert.")


# ─── HAUPT-CLI ────────────────────────────────────────────────────────────────

@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Ausführliches Logging.")
def cli(verbose: bool):
    """Vorlesungsplan-Generator für Hochschulen.

    Starten Sie mit: python main.py generate
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def main():
    """Einstiegspunkt."""
    cli()


# Befehle registrieren
cli.add_command(cmd_config)
cli.add_command(cmd_generate)
cli.add_command(cmd_validate)
cli.add_command(cmd_solve)
cli.add_command(cmd_status)
cli.add_command(cmd_learning)


if __name__ == "__main__":
    main()
