from django.test import SimpleTestCase

from imports.fetcher import (
    UNKNOWN_ASSIGNMENT_NAME,
    UNKNOWN_COURSE_NAME,
    group_by_learner,
    iter_submissions,
    resolve_assignment_title,
    resolve_course_name,
    resolve_learner,
    submission_timestamp,
)
from imports.utils import resolve_media_kind, staging_key

from .utils import FakeClassroomClient, submission


class IterSubmissionsTests(SimpleTestCase):
    def test_follows_page_tokens_until_exhausted(self):
        client = FakeClassroomClient(pages=[[submission("u1", ["a"])], [], [submission("u2", ["b"])]])

        found = list(iter_submissions(client, "c", "w"))

        self.assertEqual([s["userId"] for s in found], ["u1", "u2"])
        self.assertEqual(len(client.list_calls), 3)


class GroupByLearnerTests(SimpleTestCase):
    def test_merges_attachments_per_learner_in_order(self):
        grouped = group_by_learner(
            [
                submission("u1", ["a", "b"]),
                submission("u2", ["c"]),
                submission("u1", ["b", "d"]),
            ]
        )

        self.assertEqual([g.learner_id for g in grouped], ["u1", "u2"])
        self.assertEqual([a.file_id for a in grouped[0].attachments], ["a", "b", "d"])

    def test_drops_submissions_without_drive_files(self):
        link_only = {"userId": "u3", "assignmentSubmission": {"attachments": [{"link": {"url": "https://x"}}]}}
        empty = {"userId": "u4", "assignmentSubmission": {}}

        grouped = group_by_learner([link_only, empty, submission("u1", ["a"])])

        self.assertEqual([g.learner_id for g in grouped], ["u1"])

    def test_late_flag_and_latest_timestamp(self):
        grouped = group_by_learner(
            [
                submission("u1", ["a"], update_time="2024-02-10T09:00:00Z"),
                submission("u1", ["b"], late=True, update_time="2024-02-12T09:00:00Z"),
            ]
        )

        self.assertTrue(grouped[0].late)
        self.assertEqual(grouped[0].submitted_at, "2024-02-12T09:00:00Z")

    def test_timestamps_with_and_without_offset_compare(self):
        naive = submission("u1", ["b"], update_time="2024-03-01T00:00:00Z")
        naive["submissionHistory"] = [{"stateHistory": {"state": "TURNED_IN", "stateTimestamp": "2024-02-12T09:00:00"}}]

        grouped = group_by_learner([submission("u1", ["a"], update_time="2024-02-10T09:00:00Z"), naive])

        self.assertEqual(grouped[0].submitted_at, "2024-02-12T09:00:00")

        earlier_naive = submission("u2", ["c"], update_time="2024-02-01T09:00:00")
        grouped = group_by_learner([submission("u2", ["a"], update_time="2024-02-10T09:00:00+00:00"), earlier_naive])

        self.assertEqual(grouped[0].submitted_at, "2024-02-10T09:00:00+00:00")

    def test_attachment_metadata_is_kept(self):
        ref = group_by_learner([submission("u1", ["a"])])[0].attachments[0]

        self.assertEqual(ref.title, "a.png")
        self.assertEqual(ref.link, "https://drive.example/a")


class SubmissionTimestampTests(SimpleTestCase):
    def test_prefers_last_turned_in(self):
        sub = {
            "updateTime": "2024-03-01T00:00:00Z",
            "submissionHistory": [
                {"stateHistory": {"state": "CREATED", "stateTimestamp": "2024-02-01T00:00:00Z"}},
                {"stateHistory": {"state": "TURNED_IN", "stateTimestamp": "2024-02-02T00:00:00Z"}},
                {"gradeHistory": {"pointsEarned": 10}},
                {"stateHistory": {"state": "TURNED_IN", "stateTimestamp": "2024-02-05T00:00:00Z"}},
            ],
        }

        self.assertEqual(submission_timestamp(sub), "2024-02-05T00:00:00Z")

    def test_falls_back_to_update_time(self):
        self.assertEqual(submission_timestamp({"updateTime": "2024-03-01T00:00:00Z"}), "2024-03-01T00:00:00Z")


class ResolveOrDefaultTests(SimpleTestCase):
    def test_learner_profile(self):
        client = FakeClassroomClient(profiles={"u1": ("Aiko Sato", "aiko@example.com")})

        profile = resolve_learner(client, "u1")

        self.assertEqual((profile.name, profile.email), ("Aiko Sato", "aiko@example.com"))

    def test_learner_falls_back_to_id(self):
        with self.assertLogs("imports.fetcher", level="WARNING"):
            profile = resolve_learner(FakeClassroomClient(), "u404")

        self.assertEqual((profile.name, profile.email), ("u404", ""))

    def test_course_and_assignment_placeholders(self):
        client = FakeClassroomClient(course_name=None, assignment_title=None)

        with self.assertLogs("imports.fetcher", level="WARNING"):
            self.assertEqual(resolve_course_name(client, "c"), UNKNOWN_COURSE_NAME)
            self.assertEqual(resolve_assignment_title(client, "c", "w"), UNKNOWN_ASSIGNMENT_NAME)

    def test_course_and_assignment_names(self):
        client = FakeClassroomClient()

        self.assertEqual(resolve_course_name(client, "c"), "Design Basics")
        self.assertEqual(resolve_assignment_title(client, "c", "w"), "Logo")


class MediaKindTests(SimpleTestCase):
    def test_whitelist(self):
        self.assertEqual(resolve_media_kind("image/png"), "image")
        self.assertEqual(resolve_media_kind("IMAGE/JPEG; charset=binary"), "image")
        self.assertEqual(resolve_media_kind("application/pdf"), "document")
        self.assertIsNone(resolve_media_kind("video/mp4"))
        self.assertIsNone(resolve_media_kind("application/vnd.google-apps.document"))
        self.assertIsNone(resolve_media_kind(""))

    def test_guesses_from_name_without_content_type(self):
        self.assertEqual(resolve_media_kind(None, "scan.pdf"), "document")
        self.assertEqual(resolve_media_kind("", "photo.jpg"), "image")

    def test_staging_key_is_sanitized(self):
        self.assertEqual(staging_key("job", "user/1", "file id"), "staging/job/user_1/file_id")
