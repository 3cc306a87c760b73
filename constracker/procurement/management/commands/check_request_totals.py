"""
Django management command to compare material request line totals with
their verification history and the stage those totals imply
"""
from django.core.management.base import BaseCommand
from django.db.models import Sum
from constracker.procurement.models import MaterialRequest, MaterialRequestItem
from constracker.procurement.workflow import derive_stage


class Command(BaseCommand):
    help = 'Check material request line totals against verification history'

    def add_arguments(self, parser):
        parser.add_argument(
            '--request-id',
            type=int,
            help='Check specific material request ID only',
        )

    def handle(self, *args, **options):
        request_id = options.get('request_id')

        requests_qs = MaterialRequest.objects.filter(
            current_stage__in=MaterialRequest.VERIFIABLE_STAGES + MaterialRequest.REVIEWABLE_STAGES
        ).order_by('id')
        if request_id:
            requests_qs = requests_qs.filter(pk=request_id)

        self.stdout.write(f"Checking {requests_qs.count()} material requests")

        line_issues = 0
        stage_issues = 0
        for mr in requests_qs:
            lines = list(MaterialRequestItem.objects.filter(request=mr).select_related('item'))
            for line in lines:
                totals = line.verifications.aggregate(accepted=Sum('accepted_quantity'), rejected=Sum('rejected_quantity'))
                accepted = totals['accepted'] or 0
                rejected = totals['rejected'] or 0
                if (line.accepted_quantity, line.rejected_quantity, line.received_quantity) != (accepted, rejected, accepted + rejected):
                    line_issues += 1
                    self.stdout.write(self.style.WARNING(
                        f"MR-{mr.pk} {line.item.name}: stored {line.accepted_quantity}/{line.rejected_quantity}/"
                        f"{line.received_quantity}, history {accepted}/{rejected}/{accepted + rejected}"
                    ))

            # A request with no verifications yet legitimately sits in 'verifying'
            if mr.current_stage == MaterialRequest.STAGE_VERIFYING and not any(line.received_quantity for line in lines):
                continue
            expected = derive_stage(lines)
            if expected != mr.current_stage:
                stage_issues += 1
                self.stdout.write(self.style.WARNING(
                    f"MR-{mr.pk}: stage '{mr.current_stage}' but totals imply '{expected}'"
                ))

        if line_issues or stage_issues:
            self.stdout.write(self.style.ERROR(f"{line_issues} line mismatches, {stage_issues} stage mismatches"))
        else:
            self.stdout.write(self.style.SUCCESS('All request totals match their verification history'))
