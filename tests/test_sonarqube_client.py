"""Tests for the SonarQube Web API client."""

import json
from unittest.mock import MagicMock

import pytest
import requests

from scanguard.entities import QualityGateStatus
from scanguard.integrations.sonarqube import (
    SonarQubeAuthError,
    SonarQubeClient,
    SonarQubeError,
    SonarQubeNotFoundError,
    SonarQubeProjectExistsError,
)


def response(status, body=None):
    resp = requests.Response()
    resp.status_code = status
    resp._content = json.dumps(body).encode() if body is not None else b""
    resp.reason = "OK" if status < 400 else "Error"
    return resp


def make_client(*responses, scanner=None):
    session = MagicMock()
    session.request.side_effect = list(responses)
    client = SonarQubeClient("http://sonar.local/", "tok", scanner=scanner, session=session)
    return client, session


class TestSessionSetup:
    def test_retry_adapter_and_auth(self):
        client = SonarQubeClient("http://sonar.local", "tok")

        adapter = client.session.get_adapter("http://sonar.local/api/ce/task")
        assert adapter.max_retries.total == 3
        assert 503 in adapter.max_retries.status_forcelist
        assert client.session.auth == ("tok", "")


class TestProjects:
    def test_get_project(self):
        client, session = make_client(
            response(200, {"components": [{"key": "acme_erp_main", "name": "acme/erp (main)"}]})
        )
        project = client.get_project("acme_erp_main")

        assert project.name == "acme/erp (main)"
        session.request.assert_called_once_with(
            "GET",
            "http://sonar.local/api/projects/search",
            timeout=30.0,
            params={"projects": "acme_erp_main", "ps": 1},
        )

    def test_get_missing_project(self):
        client, _ = make_client(response(200, {"components": []}))

        with pytest.raises(SonarQubeNotFoundError):
            client.get_project("acme_erp_main")

    def test_create_project_posts_form(self):
        client, session = make_client(
            response(200, {"project": {"key": "k", "name": "n", "visibility": "private"}})
        )
        project = client.create_project("k", "n", "private")

        assert project.visibility == "private"
        method, url = session.request.call_args.args
        assert (method, url) == ("POST", "http://sonar.local/api/projects/create")
        assert session.request.call_args.kwargs["data"] == {
            "project": "k",
            "name": "n",
            "visibility": "private",
        }

    def test_create_existing_project(self):
        client, _ = make_client(
            response(
                400,
                {"errors": [{"msg": 'Could not create Project with key: "k". A similar key already exists: "k"'}]},
            )
        )
        with pytest.raises(SonarQubeProjectExistsError):
            client.create_project("k", "n", "private")

    def test_auth_failure(self):
        client, _ = make_client(response(401, {"errors": [{"msg": "Unauthorized"}]}))

        with pytest.raises(SonarQubeAuthError) as exc_info:
            client.get_project("k")
        assert exc_info.value.status_code == 401

    def test_transport_failure(self):
        session = MagicMock()
        session.request.side_effect = requests.ConnectionError("refused")
        client = SonarQubeClient("http://sonar.local", "tok", session=session)

        with pytest.raises(SonarQubeError):
            client.get_project("k")


class TestAnalyses:
    def test_known_analyses_are_paginated(self):
        page_one = {
            "paging": {"pageIndex": 1, "pageSize": 100, "total": 101},
            "analyses": [{"key": f"A{i}", "revision": f"r{i}"} for i in range(100)],
        }
        page_two = {
            "paging": {"pageIndex": 2, "pageSize": 100, "total": 101},
            "analyses": [{"key": "A100", "revision": "r100", "projectVersion": "r100"}],
        }
        client, session = make_client(response(200, page_one), response(200, page_two))

        records = client.get_known_analyses("k")

        assert len(records) == 101
        assert records[-1].revision == "r100"
        assert session.request.call_args.kwargs["params"]["p"] == 2

    def test_unknown_project_has_no_analyses(self):
        client, _ = make_client(response(404, {"errors": [{"msg": "Component key 'k' not found"}]}))

        assert client.get_known_analyses("k") == []

    def test_task_status(self):
        client, session = make_client(
            response(200, {"task": {"id": "T1", "status": "SUCCESS", "analysisId": "AX1"}})
        )
        task = client.get_scan_status("T1")

        assert (task.status, task.analysis_id) == ("SUCCESS", "AX1")
        assert session.request.call_args.kwargs["params"] == {"id": "T1"}

    def test_task_status_passes_unknown_values_through(self):
        client, _ = make_client(response(200, {"task": {"id": "T1", "status": "PAUSED"}}))

        assert client.get_scan_status("T1").status == "PAUSED"

    def test_quality_gate(self):
        client, _ = make_client(response(200, {"projectStatus": {"status": "WARN"}}))

        assert client.get_quality_gate_verdict("k").status == QualityGateStatus.WARN

    def test_unexpected_quality_gate_value(self):
        client, _ = make_client(response(200, {"projectStatus": {"status": "MAYBE"}}))

        assert client.get_quality_gate_verdict("k").status == QualityGateStatus.NONE


class TestSubmitScan:
    def test_delegates_to_scanner(self):
        scanner = MagicMock()
        scanner.run.return_value = "AYx-task"
        client, _ = make_client(scanner=scanner)
        properties = {"sonar.projectVersion": "abcdef1", "sonar.scm.revision": "abcdef1234"}

        submission = client.submit_scan("k", "main", properties)

        assert submission.task_id == "AYx-task"
        scanner.run.assert_called_once_with("k", "main", "abcdef1234", properties)

    def test_requires_revision(self):
        client, _ = make_client(scanner=MagicMock())

        with pytest.raises(SonarQubeError):
            client.submit_scan("k", "main", {"sonar.projectVersion": "abc"})

    def test_requires_scanner(self):
        client, _ = make_client()

        with pytest.raises(SonarQubeError):
            client.submit_scan("k", "main", {"sonar.scm.revision": "abc"})
