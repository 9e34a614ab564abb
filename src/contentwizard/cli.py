"""CLI entry point for the content wizard."""

import getpass
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from contentwizard import __version__
from contentwizard.config import ConfigManager, apply_env_overrides
from contentwizard.llm.prompt_logger import PromptLogger
from contentwizard.llm.providers.openai_compat import OpenAICompatibleClient
from contentwizard.models.config import DEFAULT_CONFIG_PATH, StorageConfig, WizardConfig
from contentwizard.models.plan import ContentPlan, PlanSection
from contentwizard.models.session import WizardSession
from contentwizard.services.component_catalog import ComponentCatalog
from contentwizard.services.document_processing import DocumentProcessingService
from contentwizard.services.events import EventDispatcher
from contentwizard.services.exceptions import CanvasCreationError, WizardError
from contentwizard.services.page_creator import PageCreator, PageOptions
from contentwizard.services.plan_generator import PlanGenerator
from contentwizard.services.session_manager import JsonFileSessionStore, WizardSessionManager
from contentwizard.services.storage import JsonEntityStorage
from contentwizard.services.template_mapper import TemplateMapper
from contentwizard.services.workflow import SourceBatchResult, WizardWorkflow
from contentwizard.utils.logging import configure_logging, get_logger


logger = get_logger(__name__)
console = Console()


def load_config(path: Optional[Path]) -> Optional[ConfigManager]:
    """
    Load configuration, returning None when no config file exists.

    Raises:
        click.ClickException: If the config has invalid permissions or fails validation
    """
    config_path = path or DEFAULT_CONFIG_PATH
    try:
        return ConfigManager.load_from_path(config_path)
    except FileNotFoundError:
        if path is not None:
            raise click.ClickException(f"Configuration file not found: {path}")
        logger.info("config_absent_using_defaults", path=str(config_path))
        return None
    except PermissionError as e:
        raise click.ClickException(str(e))
    except ValueError as e:
        raise click.ClickException(str(e))


def build_workflow(config: Optional[ConfigManager], log_prompts: bool = False) -> WizardWorkflow:
    """Wire services from configuration (defaults apply without a config file)."""
    if config is not None:
        wizard_config, storage_config = config.wizard, config.storage
    else:
        wizard_config = WizardConfig()
        storage_config = StorageConfig(**apply_env_overrides({})["storage"])

    data_dir = storage_config.path
    dispatcher = EventDispatcher()
    sessions = WizardSessionManager(
        JsonFileSessionStore(data_dir / "sessions"),
        dispatcher,
        session_timeout=wizard_config.session_timeout,
    )
    storage = JsonEntityStorage(data_dir)
    creator = PageCreator(storage, dispatcher, TemplateMapper(wizard_config.mismatch_policy))

    generator = None
    if config is not None:
        prompt_logger = PromptLogger(log_file=Path.home() / ".cache" / "contentwizard" / "prompts.log") if log_prompts else None
        client = OpenAICompatibleClient.from_config(config.llm, prompt_logger)
        generator = PlanGenerator(client, wizard_config)

    return WizardWorkflow(
        sessions,
        DocumentProcessingService(dispatcher=dispatcher, config=wizard_config),
        generator,
        creator,
        ComponentCatalog(),
    )


def current_session(ctx: click.Context, create: bool = False) -> WizardSession:
    workflow: WizardWorkflow = ctx.obj["workflow"]
    user_id: str = ctx.obj["user"]
    session = workflow.sessions.get_session(user_id)
    if session is None:
        if not create:
            raise click.ClickException("No active session. Run 'contentwizard start' first.")
        session = workflow.sessions.create_session(user_id)
    return session


def render_plan(plan: ContentPlan) -> Tree:
    tree = Tree(
        f"[bold]{escape(plan.title)}[/bold]  [dim]({plan.status.label}, "
        f"{plan.total_section_count} sections, {plan.total_word_count} words, "
        f"~{plan.estimated_read_time} min)[/dim]"
    )

    def add(node: Tree, section: PlanSection) -> None:
        label = escape(section.title) if section.title else "[dim](untitled)[/dim]"
        branch = node.add(f"{label} [cyan]<{escape(section.component_type)}>[/cyan] [dim]{section.word_count} words[/dim]")
        for child in section.sorted_children():
            add(branch, child)

    for section in sorted(plan.sections, key=lambda s: s.order):
        add(tree, section)
    return tree


def render_status(session: WizardSession) -> None:
    step = session.current_step
    console.print(f"[bold]Step {step.value}/3: {step.label}[/bold] ({step.progress}%)")
    console.print(f"[dim]{step.description}[/dim]")

    table = Table(show_header=False, box=None)
    table.add_row("Session", session.id)
    table.add_row("Template", escape(session.template_id) if session.template_id else "[dim]none[/dim]")
    table.add_row("Documents", str(len(session.processed_documents)))
    for document in session.processed_documents.values():
        table.add_row("", f"{escape(document.file_name)} ({document.word_count} words)")
    if session.processed_webpages:
        table.add_row("Webpages", str(len(session.processed_webpages)))
        for webpage in session.processed_webpages.values():
            table.add_row("", f"{escape(webpage.url)} ({webpage.word_count} words)")
    console.print(table)

    if session.content_plan is not None:
        console.print(render_plan(session.content_plan))
        history = session.content_plan.refinement_history
        if history:
            console.print(f"[bold]Refinements ({len(history)})[/bold]")
            for entry in history:
                console.print(f"  - {escape(entry.summary(80))}: {escape(entry.response)}")

    missing = session.missing_prerequisites()
    if missing:
        console.print(f"[yellow]To continue, add {' and '.join(missing)}.[/yellow]")


def print_batch(result: SourceBatchResult) -> None:
    for name in result.added:
        console.print(f"[green]✓[/green] {escape(name)}")
    for failure in result.failures:
        console.print(f"[red]✗[/red] {escape(str(failure))}")


@click.group()
@click.version_option(version=__version__, prog_name="contentwizard")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    help="Path to configuration file (default: ~/.config/contentwizard/config.yaml)",
)
@click.option("--user", default=None, help="Session owner (default: current OS user)")
@click.option("--log-prompts", is_flag=True, help="Append AI prompts and responses to ~/.cache/contentwizard/prompts.log")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], user: Optional[str], log_prompts: bool):
    """Content wizard: turn documents into a content plan and fill a template page."""
    configure_logging()
    ctx.ensure_object(dict)
    config = load_config(config_path)
    ctx.obj["user"] = user or getpass.getuser()
    ctx.obj["workflow"] = build_workflow(config, log_prompts)


@cli.command()
@click.pass_context
def start(ctx: click.Context):
    """Start (or resume) a wizard session."""
    session = current_session(ctx, create=True)
    render_status(session)


@cli.command()
@click.pass_context
def status(ctx: click.Context):
    """Show the current session."""
    render_status(current_session(ctx))


@cli.command("templates")
@click.pass_context
def list_templates(ctx: click.Context):
    """List available templates."""
    workflow: WizardWorkflow = ctx.obj["workflow"]
    templates = workflow.creator.storage.list_templates()
    if not templates:
        console.print("[yellow]No templates found.[/yellow]")
        return
    table = Table("ID", "Title")
    for template_id, title in templates.items():
        table.add_row(escape(template_id), escape(title))
    console.print(table)


@cli.command("add-source")
@click.argument("files", nargs=-1, required=True, type=click.Path(path_type=Path))
@click.pass_context
def add_source(ctx: click.Context, files: tuple[Path, ...]):
    """Process source documents and attach them to the session."""
    workflow: WizardWorkflow = ctx.obj["workflow"]
    session = current_session(ctx, create=True)
    try:
        result = workflow.add_sources(session, files)
    except WizardError as e:
        raise click.ClickException(str(e))
    print_batch(result)


@cli.command("add-url")
@click.argument("urls", nargs=-1, required=True)
@click.pass_context
def add_url(ctx: click.Context, urls: tuple[str, ...]):
    """Fetch web pages (plain text or Markdown) and attach them to the session."""
    workflow: WizardWorkflow = ctx.obj["workflow"]
    session = current_session(ctx, create=True)
    try:
        result = workflow.add_webpages(session, urls)
    except WizardError as e:
        raise click.ClickException(str(e))
    print_batch(result)


@cli.command("template")
@click.argument("template_id")
@click.pass_context
def select_template(ctx: click.Context, template_id: str):
    """Select the template page to fill."""
    workflow: WizardWorkflow = ctx.obj["workflow"]
    session = current_session(ctx, create=True)
    try:
        workflow.select_template(session, template_id)
    except WizardError as e:
        raise click.ClickException(str(e))
    console.print(f"Template set to [bold]{escape(template_id)}[/bold]")


@cli.command()
@click.pass_context
def advance(ctx: click.Context):
    """Continue to the next step."""
    workflow: WizardWorkflow = ctx.obj["workflow"]
    session = current_session(ctx)
    try:
        workflow.sessions.advance(session)
    except WizardError as e:
        raise click.ClickException(str(e))
    render_status(session)


@cli.command()
@click.pass_context
def back(ctx: click.Context):
    """Return to the previous step."""
    workflow: WizardWorkflow = ctx.obj["workflow"]
    session = current_session(ctx)
    if not workflow.sessions.go_back(session):
        console.print("[dim]Already on the first step.[/dim]")
    render_status(session)


@cli.command()
@click.option("--tone", help="Writing tone, e.g. 'friendly'")
@click.option("--max-sections", type=int, help="Maximum number of top-level sections")
@click.option("--audience", help="Target audience")
@click.pass_context
def generate(ctx: click.Context, tone: Optional[str], max_sections: Optional[int], audience: Optional[str]):
    """Generate the content plan from the session's documents."""
    workflow: WizardWorkflow = ctx.obj["workflow"]
    session = current_session(ctx)
    options = {"tone": tone, "max_sections": max_sections, "target_audience": audience}
    try:
        with console.status("Generating content plan..."):
            plan = workflow.generate_plan(session, {k: v for k, v in options.items() if v})
    except WizardError as e:
        raise click.ClickException(str(e))
    console.print(render_plan(plan))


@cli.command()
@click.argument("instructions")
@click.pass_context
def refine(ctx: click.Context, instructions: str):
    """Refine the content plan with free-text INSTRUCTIONS."""
    workflow: WizardWorkflow = ctx.obj["workflow"]
    session = current_session(ctx)
    try:
        with console.status("Refining content plan..."):
            plan = workflow.refine_plan(session, instructions)
    except WizardError as e:
        raise click.ClickException(str(e))
    console.print(render_plan(plan))
    latest = plan.refinement_history[-1]
    console.print(f"[green]{escape(latest.response)}[/green] ({latest.affected_section_count} sections affected)")


@cli.command()
@click.argument("title")
@click.pass_context
def retitle(ctx: click.Context, title: str):
    """Change the plan's page title."""
    workflow: WizardWorkflow = ctx.obj["workflow"]
    try:
        plan = workflow.retitle_plan(current_session(ctx), title)
    except (WizardError, ValueError) as e:
        raise click.ClickException(str(e))
    console.print(f"Title set to [bold]{escape(plan.title)}[/bold]")


@cli.command()
@click.pass_context
def approve(ctx: click.Context):
    """Approve the content plan."""
    workflow: WizardWorkflow = ctx.obj["workflow"]
    try:
        plan = workflow.approve_plan(current_session(ctx))
    except (WizardError, ValueError) as e:
        raise click.ClickException(str(e))
    console.print(f"Plan [bold]{escape(plan.title)}[/bold] approved")


@cli.command()
@click.option("--title", help="Page title (default: plan title)")
@click.option("--publish", is_flag=True, help="Publish the page")
@click.option("--description", help="Page description (default: plan summary)")
@click.option("--alias", help="URL alias (default: derived from the title)")
@click.pass_context
def create(
    ctx: click.Context,
    title: Optional[str],
    publish: bool,
    description: Optional[str],
    alias: Optional[str],
):
    """Create the page from the template and end the session."""
    workflow: WizardWorkflow = ctx.obj["workflow"]
    session = current_session(ctx)
    options = PageOptions(title=title, published=publish, description=description, alias=alias)
    try:
        result = workflow.create_page(session, options)
    except CanvasCreationError as e:
        console.print(f"[red]Page creation failed:[/red] {escape(e.message)}")
        for violation in e.validation_errors:
            console.print(f"  - {escape(violation)}")
        raise click.ClickException("The session has been kept; fix the problem and retry.")
    except WizardError as e:
        raise click.ClickException(str(e))

    mapping = result.mapping
    console.print(f"[green]✓[/green] Created page [bold]{escape(result.page.title)}[/bold] ({escape(result.page.id)})")
    console.print(f"  {mapping.filled_count} components filled")
    if mapping.unmapped_count:
        console.print(f"  [yellow]{mapping.unmapped_count} sections did not fit the template[/yellow]")
    if mapping.skipped_count:
        console.print(f"  [yellow]{mapping.skipped_count} components skipped on type mismatch[/yellow]")


@cli.command()
@click.pass_context
def clear(ctx: click.Context):
    """Abandon the current session."""
    workflow: WizardWorkflow = ctx.obj["workflow"]
    workflow.sessions.clear_session(ctx.obj["user"])
    console.print("Session cleared")


def main():
    """Main entry point for setuptools console script."""
    cli()


if __name__ == "__main__":
    main()
