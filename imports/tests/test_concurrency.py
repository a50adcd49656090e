import threading
from unittest import mock

from django.db import connection
from django.test import TestCase, TransactionTestCase, skipUnlessDBFeature

from imports import store, tracker
from imports.models import ImportJob

from .utils import create_job


@skipUnlessDBFeature("has_select_for_update")
class LastUnitsFinishTogetherTests(TransactionTestCase):
    def setUp(self):
        self.job = create_job(unit_keys=["learner-1", "learner-2"], progress=10)

    def finish_unit(self, barrier, unit_key, errors):
        try:
            barrier.wait(timeout=10)
            store.record_unit_result(self.job.pk, unit_key, True)
            tracker.check_import_completion(self.job.pk)
        except Exception as exc:
            errors.append(exc)
        finally:
            connection.close()

    def test_gallery_is_finalized_once(self):
        barrier = threading.Barrier(2)
        errors = []
        workers = [
            threading.Thread(target=self.finish_unit, args=(barrier, key, errors))
            for key in ("learner-1", "learner-2")
        ]

        with mock.patch("imports.tracker.finalize_gallery", wraps=tracker.finalize_gallery) as mock_finalize:
            for worker in workers:
                worker.start()
            for worker in workers:
                worker.join(timeout=30)

        self.assertEqual(errors, [])
        mock_finalize.assert_called_once_with(self.job.gallery_id, self.job.pk)
        self.job.refresh_from_db()
        self.assertEqual(self.job.status, ImportJob.Status.COMPLETED)
        self.assertEqual(self.job.processed_units, 2)
        self.assertEqual(self.job.unit_results, {"learner-1": "processed", "learner-2": "processed"})
        self.job.gallery.refresh_from_db()
        self.assertIsNotNone(self.job.gallery.last_import_at)


class InterleavedCompletionTests(TestCase):
    @mock.patch("imports.tracker.finalize_gallery")
    def test_both_workers_see_all_units_resolved(self, mock_finalize):
        job = create_job(unit_keys=["learner-1", "learner-2"], progress=10)

        # Both results land before either worker checks for completion.
        store.record_unit_result(job.pk, "learner-1", True)
        store.record_unit_result(job.pk, "learner-2", False)
        tracker.check_import_completion(job.pk)
        tracker.check_import_completion(job.pk)

        mock_finalize.assert_called_once_with(job.gallery_id, job.pk)
        job.refresh_from_db()
        self.assertEqual(job.status, ImportJob.Status.COMPLETED)
        self.assertEqual((job.processed_units, job.failed_units), (1, 1))
