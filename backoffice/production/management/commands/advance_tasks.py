"""
Management command to move overdue auto-advance tasks to today
"""
from datetime import date
from django.core.management.base import BaseCommand, CommandError
from backoffice.core.models import Organization
from backoffice.production.board import advance_overdue_tasks


class Command(BaseCommand):
    help = "Moves incomplete auto-advance tasks that are past due onto today's board"

    def add_arguments(self, parser):
        parser.add_argument(
            '--organization',
            type=int,
            help='Only advance tasks of this organization id',
        )
        parser.add_argument(
            '--date',
            type=str,
            help='Treat this date (YYYY-MM-DD) as today',
        )

    def handle(self, *args, **options):
        organization = None
        if options.get('organization'):
            try:
                organization = Organization.objects.get(pk=options['organization'])
            except Organization.DoesNotExist:
                raise CommandError(f"Organization {options['organization']} does not exist")

        today = None
        if options.get('date'):
            try:
                today = date.fromisoformat(options['date'])
            except ValueError:
                raise CommandError(f"Invalid date: {options['date']}")

        advanced = advance_overdue_tasks(organization=organization, today=today)
        for task in advanced:
            self.stdout.write(f"  {task.title} -> {task.due_date}")
        self.stdout.write(self.style.SUCCESS(f"Advanced {len(advanced)} tasks"))
