"""Management command to rebuild fidelity counters from appointment history."""

from django.core.management.base import BaseCommand, CommandError

from barberman.exceptions import BarbermanError
from barberman.services.fidelity import FidelityService


class Command(BaseCommand):
    help = "Recalculate client fidelity counters from completed appointments"

    def add_arguments(self, parser):
        parser.add_argument(
            "--unit",
            default=None,
            help="Only clients of this unit code",
        )
        parser.add_argument(
            "--client",
            default=None,
            help="Only this client code",
        )

    def handle(self, *args, **options):
        try:
            if options["client"]:
                result = FidelityService.recalculate(
                    options["client"], created_by="barberman_sync_fidelity"
                )
                self.stdout.write(
                    self.style.SUCCESS(
                        f"{options['client']}: {result.loyalty_cuts}/{result.threshold} cuts, "
                        f"{result.total_visits} visits, "
                        f"{result.available_courtesies} courtesies available."
                    )
                )
                return

            summary = FidelityService.recalculate_unit(
                options["unit"], created_by="barberman_sync_fidelity"
            )
        except BarbermanError as e:
            raise CommandError(e.message)

        self.stdout.write(
            self.style.SUCCESS(
                f"{summary.processed} clients processed, {summary.updated} updated."
            )
        )
        for code in summary.failed:
            self.stderr.write(f"Failed: {code}")
