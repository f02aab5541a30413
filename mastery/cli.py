# -*- coding: utf-8 -*-
"""
Flask CLI commands for cron:

    flask --app mastery.factory workflows process
    flask --app mastery.factory workflows resume-due
"""
import json

import click
from flask.cli import AppGroup

from mastery.services.workflow_runner import build_runner
from mastery.services.workflow_triggers import process_scheduled

workflows_cli = AppGroup('workflows', help='Workflow automation maintenance.')


@workflows_cli.command('process')
def process_command():
    """Scan inactivity workflows and resume due executions."""
    result = process_scheduled()
    click.echo(json.dumps(result, indent=2, default=str))


@workflows_cli.command('resume-due')
def resume_due_command():
    """Resume waiting executions whose delay has elapsed."""
    resumed = build_runner().resume_due()
    click.echo(f"Resumed {len(resumed)} execution(s)")
    for entry in resumed:
        click.echo(json.dumps(entry, default=str))


def init_cli(app):
    app.cli.add_command(workflows_cli)
