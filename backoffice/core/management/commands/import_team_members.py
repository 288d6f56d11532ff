"""
Management command to import team members from a CSV file
"""
import csv
import os
from django.core.management.base import BaseCommand, CommandError
from backoffice.core.models import Organization, TeamMember
from backoffice.core.permissions import ROLE_DEFINITIONS


class Command(BaseCommand):
    help = "Imports team members (first_name, last_name, email, phone, kitchen_role, kitchen_stations) from CSV"

    def add_arguments(self, parser):
        parser.add_argument('csv_file', type=str, help='Path to the CSV file')
        parser.add_argument(
            '--organization',
            type=int,
            required=True,
            help='Organization id the members belong to',
        )
        parser.add_argument(
            '--default-role',
            type=str,
            default='team_member',
            help='Role used when the kitchen_role column is empty (default: team_member)',
        )

    def parse_stations(self, value):
        """Stations are separated by ';' or '|' inside the cell"""
        if not value:
            return []
        value = value.replace('|', ';')
        return [s.strip() for s in value.split(';') if s.strip()]

    def handle(self, *args, **options):
        csv_file = options['csv_file']
        default_role = options['default_role']

        if default_role not in ROLE_DEFINITIONS:
            raise CommandError(f"Unknown role: {default_role}")

        try:
            organization = Organization.objects.get(pk=options['organization'])
        except Organization.DoesNotExist:
            raise CommandError(f"Organization {options['organization']} not found")

        if not os.path.exists(csv_file):
            raise CommandError(f"CSV file not found at {csv_file}")

        self.stdout.write(self.style.SUCCESS(f"Importing team members into {organization.name}"))
        self.stdout.write(f"CSV File: {csv_file}")

        created_count = 0
        skipped_count = 0
        empty_count = 0
        seen_emails = set()

        with open(csv_file, 'r', encoding='utf-8-sig') as f:
            reader = csv.DictReader(f)
            reader.fieldnames = [(name or '').strip().lower() for name in (reader.fieldnames or [])]

            for row in reader:
                first_name = (row.get('first_name') or '').strip()
                if not first_name:
                    empty_count += 1
                    continue

                email = (row.get('email') or '').strip().lower()
                if email:
                    if email in seen_emails or TeamMember.objects.filter(
                        organization=organization, email__iexact=email
                    ).exists():
                        skipped_count += 1
                        self.stdout.write(self.style.WARNING(f"  Skipped (already exists): {email}"))
                        continue
                    seen_emails.add(email)

                role = (row.get('kitchen_role') or '').strip().lower() or default_role
                if role not in ROLE_DEFINITIONS:
                    self.stdout.write(self.style.WARNING(f"  Unknown role {role!r} for {first_name}, using {default_role}"))
                    role = default_role

                TeamMember.objects.create(
                    organization=organization,
                    first_name=first_name,
                    last_name=(row.get('last_name') or '').strip(),
                    email=email,
                    phone=(row.get('phone') or '').strip(),
                    kitchen_role=role,
                    kitchen_stations=self.parse_stations(row.get('kitchen_stations')),
                )
                created_count += 1
                self.stdout.write(self.style.SUCCESS(f"  Created: {first_name} {row.get('last_name', '')}".rstrip()))

        self.stdout.write(self.style.SUCCESS("SUMMARY"))
        self.stdout.write(f"Team Members Created: {created_count}")
        self.stdout.write(f"Team Members Skipped (duplicates/existing): {skipped_count}")
        self.stdout.write(f"Empty Rows Skipped: {empty_count}")
