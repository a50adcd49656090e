from logging import getLogger

from rest_framework import status, views
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.response import Response

from .exceptions import ImportJobFatal, InvalidImportRequest
from .models import ImportJob
from .orchestrator import start_import
from .permissions import HasImportTaskToken
from .serializers import ImportJobSerializer, StartImportSerializer, SubmissionWorkUnitSerializer
from .tasks import run_work_unit
from .units import SubmissionWorkUnit

logger = getLogger(__name__)


class StartImportView(views.APIView):
    """
    Starts a Classroom import for a gallery. Staff only. The submissions are
    enumerated and staged during the request; conversion happens in the
    dispatched work units.
    """
    permission_classes = [IsAdminUser]

    def post(self, request):
        ser = StartImportSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        initiator = request.user.email or request.user.get_username()

        try:
            job_id = start_import(
                ser.validated_data["gallery_id"],
                ser.validated_data["course_id"],
                ser.validated_data["assignment_id"],
                initiator,
            )
        except InvalidImportRequest as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except ImportJobFatal as exc:
            return Response(
                {"detail": str(exc), "import_job_id": str(exc.job_id)},
                status=status.HTTP_502_BAD_GATEWAY,
            )
        return Response({"import_job_id": job_id, "message": "Import job started"}, status=status.HTTP_202_ACCEPTED)


class ImportJobDetailView(views.APIView):
    permission_classes = [AllowAny]

    def get(self, request, job_id):
        try:
            job = ImportJob.objects.get(pk=job_id)
        except ImportJob.DoesNotExist:
            return Response({"detail": "Import job not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(ImportJobSerializer(job).data)


class ProcessWorkUnitView(views.APIView):
    """
    Push-queue delivery endpoint. The body is exactly a serialized
    SubmissionWorkUnit and the queue must send the shared task token. Once a
    unit has been attempted the response is 200 whatever the outcome, because
    the failure is already recorded on the job and a redelivery would not
    change it.
    """
    permission_classes = [HasImportTaskToken]
    authentication_classes = []

    def post(self, request):
        ser = SubmissionWorkUnitSerializer(data=request.data)
        if not ser.is_valid():
            logger.warning("Rejected invalid work unit payload: %s", ser.errors)
            return Response({"success": False, "errors": ser.errors}, status=status.HTTP_400_BAD_REQUEST)

        unit = SubmissionWorkUnit.from_dict(request.data)
        if not ImportJob.objects.filter(pk=unit.job_id).exists():
            return Response({"success": False, "detail": "Import job not found"}, status=status.HTTP_404_NOT_FOUND)

        succeeded = run_work_unit(unit)
        return Response({"success": succeeded, "learner_id": unit.learner_id}, status=status.HTTP_200_OK)
