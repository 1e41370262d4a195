"""Command line interface for practiceflow templates and executions."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import List, Optional

import typer
import yaml

from practiceflow import WorkflowService, get_repository, load_config
from practiceflow.contracts import (
    EntityRef,
    ExecutionConfig,
    ExecutionCustomization,
    StepStatus,
    TemplateConfig,
)
from practiceflow.errors import PracticeflowError

app = typer.Typer(help="CLI for practiceflow guided workflows")

# Command groups
template_app = typer.Typer(help="Commands for managing workflow templates")
execution_app = typer.Typer(help="Commands for running workflow executions")

app.add_typer(template_app, name="template")
app.add_typer(execution_app, name="execution")


@app.callback()
def main() -> None:
    """practiceflow CLI entry point."""
    config = load_config()
    logging.basicConfig(level=config.log_level.upper())


def _service() -> WorkflowService:
    return WorkflowService(repository=get_repository())


def _fail(exc: Exception) -> None:
    typer.secho(str(exc), fg=typer.colors.RED)
    raise typer.Exit(code=1)


@template_app.command("seed")
def template_seed(created_by: Optional[str] = None) -> None:
    """Register the stock templates and print their ids."""
    templates = asyncio.run(_service().seed_predefined(created_by=created_by))
    for template in templates:
        typer.echo(f"{template.id}\t{template.name}")


@template_app.command("create")
def template_create(path: Path, created_by: Optional[str] = None) -> None:
    """
    Create a template from a YAML definition.

    Example:
        practiceflow template create ./onboarding.yaml --created-by ops
    """
    if not path.exists():
        typer.secho("Specified path does not exist", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    data = yaml.safe_load(path.read_text()) or {}
    try:
        config = TemplateConfig.model_validate(data)
        template = asyncio.run(_service().create_template(config, created_by=created_by))
    except (PracticeflowError, ValueError) as exc:
        _fail(exc)
    typer.echo(f"Template created: {template.id}")


@template_app.command("list")
def template_list() -> None:
    """List stored templates."""
    templates = asyncio.run(_service().list_templates())
    if not templates:
        typer.echo("No templates found")
        return
    for template in templates:
        typer.echo(
            f"{template.id}\t{template.workflow_type.value}\t{len(template.steps)} steps\t{template.name}"
        )


@template_app.command("show")
def template_show(template_id: str) -> None:
    """Show a template's steps and their prerequisites."""
    service = _service()
    try:
        template = asyncio.run(service.get_template(template_id))
    except PracticeflowError as exc:
        _fail(exc)
    usage = asyncio.run(service.registry.get_usage(template_id))
    typer.echo(f"Template {template.id}: {template.name}")
    typer.echo(f"Used {usage.times_used} times")
    for step in template.steps:
        needs = ", ".join(step.prerequisite_steps) or "-"
        typer.echo(f"- {step.id} [{step.type}] {step.title} (after: {needs})")


@execution_app.command("start")
def execution_start(
    template_id: str,
    name: str = typer.Option(..., help="Name of the execution"),
    owner_kind: str = typer.Option("client", help="Kind of owning entity"),
    owner_id: str = typer.Option(..., help="Id of owning entity"),
    assigned_to: Optional[str] = None,
    supervisor: Optional[str] = None,
    skip: List[str] = typer.Option([], help="Step ids to leave out"),
) -> None:
    """
    Start an execution of a template for a client or project.

    Example:
        practiceflow execution start <template_id> --name "Smith & Co" --owner-id 42
    """
    config = ExecutionConfig(
        name=name,
        owner=EntityRef(kind=owner_kind, id=owner_id),
        assigned_to=assigned_to,
        supervisor_id=supervisor,
        customizations=ExecutionCustomization(skip_steps=skip) if skip else None,
    )
    try:
        execution = asyncio.run(_service().start_execution(template_id, config))
    except PracticeflowError as exc:
        _fail(exc)
    active = [s.step_id for s in execution.states_with(StepStatus.IN_PROGRESS)]
    typer.echo(f"Execution started: {execution.id}")
    typer.echo(f"In progress: {', '.join(active) or '(none)'}")


@execution_app.command("step")
def execution_step(
    execution_id: str,
    step_id: str,
    outputs: Optional[str] = typer.Option(None, help="JSON object of step outputs"),
    notes: Optional[str] = None,
    override: bool = typer.Option(False, help="Skip validation criteria"),
) -> None:
    """Report a step as done, validating its outputs."""
    try:
        data = json.loads(outputs) if outputs else {}
    except json.JSONDecodeError as exc:
        _fail(exc)
    try:
        result = asyncio.run(
            _service().execute_step(
                execution_id, step_id, data, validation_override=override, notes=notes
            )
        )
    except PracticeflowError as exc:
        _fail(exc)
    typer.echo(f"Step {result.step_id}: {result.status.value}")
    for error in result.validation_results.errors:
        typer.secho(f"  {error}", fg=typer.colors.YELLOW)
    if result.next_steps:
        typer.echo(f"Next: {', '.join(result.next_steps)}")


@execution_app.command("progress")
def execution_progress(execution_id: str) -> None:
    """Show progress, blockers and upcoming milestones."""
    try:
        report = asyncio.run(_service().get_progress(execution_id))
    except PracticeflowError as exc:
        _fail(exc)
    overall = report.overall_progress
    typer.echo(f"Execution {report.execution_id} ({report.template_name}): {report.status.value}")
    typer.echo(
        f"Progress: {overall.completed_steps}/{overall.total_steps} ({overall.percentage}%)"
    )
    typer.echo(f"Current step: {report.current_step.title}")
    for blocker in report.blockers:
        typer.secho(f"Blocked: {blocker.step_id} - {blocker.reason}", fg=typer.colors.RED)
    for milestone in report.upcoming_milestones:
        typer.echo(f"Upcoming: {milestone.title} ({milestone.due_date:%Y-%m-%d})")


@execution_app.command("list")
def execution_list(template_id: Optional[str] = None) -> None:
    """List executions with their status and progress."""
    executions = asyncio.run(_service().list_executions(template_id))
    if not executions:
        typer.echo("No executions found")
        return
    for execution in executions:
        typer.echo(
            f"{execution.id}\t{execution.status.value}\t{execution.progress_percentage}%\t{execution.name}"
        )


@execution_app.command("hold")
def execution_hold(execution_id: str) -> None:
    """Put an active execution on hold."""
    try:
        execution = asyncio.run(_service().hold_execution(execution_id))
    except PracticeflowError as exc:
        _fail(exc)
    typer.echo(f"Execution {execution.id}: {execution.status.value}")


@execution_app.command("resume")
def execution_resume(execution_id: str) -> None:
    """Resume an execution that is on hold."""
    try:
        execution = asyncio.run(_service().resume_execution(execution_id))
    except PracticeflowError as exc:
        _fail(exc)
    typer.echo(f"Execution {execution.id}: {execution.status.value}")


@execution_app.command("cancel")
def execution_cancel(execution_id: str) -> None:
    """Cancel an active or held execution."""
    try:
        execution = asyncio.run(_service().cancel_execution(execution_id))
    except PracticeflowError as exc:
        _fail(exc)
    typer.echo(f"Execution {execution.id}: {execution.status.value}")


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
