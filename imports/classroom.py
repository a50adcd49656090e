"""
Minimal Google Classroom / Drive REST client.

Only the calls the importer needs are implemented. Every transport or HTTP
error is re-raised as ``ExternalSourceFailure`` so callers have a single
exception type to contain at the attachment and submission boundaries.
"""
from logging import getLogger

import requests
from django.conf import settings
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .exceptions import ExternalSourceFailure

logger = getLogger(__name__)


def requests_retry_session(
    retries=3,
    backoff_factor=2,
    status_forcelist=(429, 500, 502, 503, 504),
    session=None,
):
    session = session or requests.Session()
    retry = Retry(
        total=retries,
        read=retries,
        connect=retries,
        backoff_factor=backoff_factor,
        status_forcelist=status_forcelist,
        allowed_methods=frozenset({"GET"}),
        respect_retry_after_header=True,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


class ClassroomClient:
    def __init__(self, access_token=None, session=None, classroom_base_url=None, drive_base_url=None):
        self.access_token = access_token if access_token is not None else settings.CLASSROOM_ACCESS_TOKEN
        self.classroom_base_url = (classroom_base_url or settings.CLASSROOM_API_BASE_URL).rstrip("/")
        self.drive_base_url = (drive_base_url or settings.DRIVE_API_BASE_URL).rstrip("/")
        self.timeout = settings.CLASSROOM_REQUEST_TIMEOUT
        self.session = session or requests_retry_session()
        if self.access_token:
            self.session.headers["Authorization"] = f"Bearer {self.access_token}"

    def _get(self, url, params=None):
        try:
            resp = self.session.get(url, params=params, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise ExternalSourceFailure(f"GET {url} failed: {exc}") from exc
        return resp

    def _get_json(self, url, params=None) -> dict:
        resp = self._get(url, params=params)
        try:
            return resp.json()
        except ValueError as exc:
            raise ExternalSourceFailure(f"GET {url} returned invalid JSON") from exc

    def list_submissions(self, course_id, assignment_id, states, page_token=None) -> dict:
        """One page of studentSubmissions; the caller follows ``nextPageToken``."""
        params = [("states", s) for s in states]
        params.append(("pageSize", settings.CLASSROOM_PAGE_SIZE))
        if page_token:
            params.append(("pageToken", page_token))
        return self._get_json(
            f"{self.classroom_base_url}/courses/{course_id}/courseWork/{assignment_id}/studentSubmissions",
            params=params,
        )

    def get_user_profile(self, user_id) -> dict:
        return self._get_json(f"{self.classroom_base_url}/userProfiles/{user_id}")

    def get_course(self, course_id) -> dict:
        return self._get_json(f"{self.classroom_base_url}/courses/{course_id}")

    def get_course_work(self, course_id, assignment_id) -> dict:
        return self._get_json(f"{self.classroom_base_url}/courses/{course_id}/courseWork/{assignment_id}")

    def get_file_metadata(self, file_id) -> dict:
        return self._get_json(
            f"{self.drive_base_url}/files/{file_id}",
            params={"fields": "id,name,mimeType,webViewLink"},
        )

    def download_file(self, file_id) -> bytes:
        resp = self._get(f"{self.drive_base_url}/files/{file_id}", params={"alt": "media"})
        logger.debug("Downloaded Drive file %s (%d bytes)", file_id, len(resp.content))
        return resp.content
