import json

from django.core.management.base import BaseCommand

from core.services.reminders import process_reminders


class Command(BaseCommand):
    help = "Send due recommendation reminders and flag overdue requests."

    def add_arguments(self, parser):
        parser.add_argument("--json", action="store_true", help="Print the full result as JSON.")

    def handle(self, *args, **opts):
        result = process_reminders()
        if opts["json"]:
            self.stdout.write(json.dumps(result, indent=2))
            return
        for item in result["details"]:
            self.stdout.write(
                f"request {item['requestId']} -> {item['recipientEmail']}: "
                f"{item['status']} ({item['urgency']}, {item['daysUntilDeadline']}d left)"
            )
        style = self.style.SUCCESS if not result["errors"] else self.style.WARNING
        self.stdout.write(style(
            f"processed={result['processed']} sent={result['sent']} "
            f"errors={result['errors']} overdue={result['overdue']}"
        ))
