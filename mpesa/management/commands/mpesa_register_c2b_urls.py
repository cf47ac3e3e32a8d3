"""
Management command to register C2B confirmation and validation URLs.
"""

from django.core.management.base import BaseCommand, CommandError

from mpesa.client import MpesaClient
from mpesa.constants import ResponseType
from mpesa.payloads import C2bRegisterUrlRequest
from mpesa.results import capture


class Command(BaseCommand):
    help = 'Register C2B confirmation and validation URLs with M-Pesa'

    def add_arguments(self, parser):
        parser.add_argument('--confirmation-url', type=str, required=True)
        parser.add_argument('--validation-url', type=str, required=True)
        parser.add_argument(
            '--response-type',
            choices=[t.value for t in ResponseType],
            default=ResponseType.COMPLETED.value,
            help='What M-Pesa does when the validation URL is unreachable'
        )

    def handle(self, *args, **options):
        request = C2bRegisterUrlRequest(
            confirmation_url=options['confirmation_url'],
            validation_url=options['validation_url'],
            response_type=options['response_type'],
        )

        with MpesaClient() as client:
            result = capture(client.register_c2b_url, request)

        if not result.ok:
            raise CommandError(f'C2B URL registration failed ({result.kind}): {result.error.message}')

        self.stdout.write(self.style.SUCCESS(
            f'C2B URLs registered: {result.value.response_description}'
        ))
        self.stdout.write(f'  ConversationID: {result.value.conversation_id}')
