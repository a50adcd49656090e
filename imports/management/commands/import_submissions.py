from django.core.management.base import BaseCommand, CommandError

from imports.dispatch import get_dispatcher
from imports.exceptions import ImportJobFatal, InvalidImportRequest
from imports.orchestrator import start_import
from imports.store import get_job_status


class Command(BaseCommand):
    help = "Import a Classroom assignment's submissions into a gallery"

    def add_arguments(self, parser):
        parser.add_argument("gallery_id")
        parser.add_argument("course_id")
        parser.add_argument("assignment_id")
        parser.add_argument("--initiator", required=True, help="Email recorded as the job's creator")
        parser.add_argument(
            "--inline",
            action="store_true",
            help="Process work units in this process instead of queueing them",
        )

    def handle(self, *args, **options):
        dispatcher = get_dispatcher("inline" if options["inline"] else None)
        try:
            job_id = start_import(
                options["gallery_id"],
                options["course_id"],
                options["assignment_id"],
                options["initiator"],
                dispatcher=dispatcher,
            )
        except (InvalidImportRequest, ImportJobFatal) as exc:
            raise CommandError(str(exc)) from exc

        job_status = get_job_status(job_id)
        self.stdout.write(
            f"Import job {job_id}: {job_status['status']} "
            f"({job_status['processed_files']}/{job_status['total_files']} processed, "
            f"{len(job_status['error_files'])} errors)"
        )
