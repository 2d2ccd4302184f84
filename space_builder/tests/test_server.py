"""
Tests for the HTTP API - ensures endpoint response shapes are locked.

These tests will fail if:
- /api/convert stops returning the renderer's exact configuration shape
- malformed payloads stop being answered with 422 and an error code
- rule violations stop being answered with 200 and an issue
- /api/space stops returning the serialized pipeline result
"""

import pytest
from fastapi.testclient import TestClient
from unittest.mock import patch

from space_builder.agent_types import PipelineResult, PipelineStatus
from space_builder.converter import convert
from space_builder.models import ResearchData, SocialAccounts
from space_builder.server import app


@pytest.fixture
def client():
    """Return a FastAPI TestClient for the app."""
    return TestClient(app)


@pytest.fixture
def config_dict(policy, sample_plan):
    return convert(sample_plan.to_matrix(policy), policy, layout_id="layout-1").config.to_json_dict()


class TestConvertEndpoint:

    def test_exact_config_shape(self, client, sample_payload):
        """The endpoint returns the renderer's exact config shape."""
        response = client.post("/api/convert", json={"design": sample_payload, "layout_id": "layout-42"})
        assert response.status_code == 200
        body = response.json()

        assert body["ok"] is True
        assert body["issue"] is None
        config = body["config"]
        assert set(config) == {
            "fidgetInstanceDatums", "layoutID", "layoutDetails",
            "isEditable", "fidgetTrayContents", "theme",
        }
        assert config["layoutID"] == "layout-42"
        assert config["layoutDetails"]["layoutFidget"] == "grid"
        assert config["isEditable"] is True
        assert config["fidgetTrayContents"] == []
        assert config["theme"]["id"] == "default-theme"

        welcome = config["fidgetInstanceDatums"]["text:welcome"]
        assert welcome == {
            "config": {
                "editable": True,
                "settings": {
                    "title": "Welcome",
                    "text": "Join the club!",
                    "fontColor": "var(--user-theme-font-color)",
                    "headingsFontColor": "var(--user-theme-headings-font-color)",
                    "background": "var(--user-theme-fidget-background)",
                },
                "data": {},
            },
            "fidgetType": "text",
            "id": "text:welcome",
        }
        layout = {item["i"]: item for item in config["layoutDetails"]["layoutConfig"]["layout"]}
        assert layout["text:welcome"] == {
            "i": "text:welcome", "x": 0, "y": 0, "w": 6, "h": 2,
            "minW": 6, "maxW": 36, "minH": 2, "maxH": 36,
            "moved": False, "static": False,
        }

    def test_unknown_type_is_200_with_issue(self, client, sample_payload):
        """Rule failures answer 200 with an issue."""
        sample_payload["fidgets"][0]["type"] = "hologram"
        response = client.post("/api/convert", json={"design": sample_payload})
        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is False
        assert body["config"] is None
        assert body["issue"]["code"] == "UNKNOWN_FIDGET_TYPE"

    def test_malformed_design_is_422(self, client):
        """Malformed designs answer 422 with an error code."""
        response = client.post("/api/convert", json={"design": {"fidgets": [{"id": "a"}]}})
        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "MISSING_FIELD"
        assert "fidgets.0.type" in body["message"]


class TestValidationEndpoints:

    def test_validate_design_accept(self, client, sample_payload):
        """The sample design is accepted."""
        response = client.post("/api/validate/design", json={"design": sample_payload})
        assert response.status_code == 200
        body = response.json()
        assert body["verdict"] == "accept"
        assert body["malformed"] is False
        assert body["occupied_cells"] == 88

    def test_validate_design_reject(self, client):
        """A sparse design is rejected."""
        design = {"fidgets": [
            {"id": "text:a", "type": "text", "position": {"x": 0, "y": 0, "width": 3, "height": 2}},
        ]}
        body = client.post("/api/validate/design", json={"design": design}).json()
        assert body["verdict"] == "reject"
        assert body["issue"]["code"] == "COVERAGE_BELOW_MINIMUM"
        assert body["malformed"] is False

    def test_validate_design_malformed_matrix(self, client):
        """A matrix of the wrong shape is flagged malformed."""
        design = {"width": 12, "height": 8, "cells": [[None] * 12], "items": []}
        body = client.post("/api/validate/design", json={"design": design}).json()
        assert body["verdict"] == "reject"
        assert body["malformed"] is True

    def test_verify(self, client, sample_payload, config_dict):
        """A matching config verifies."""
        body = client.post("/api/verify", json={"design": sample_payload, "config": config_dict}).json()
        assert body["ok"] is True
        assert body["issues"] == []

    def test_verify_mismatch_collects_all(self, client, sample_payload, config_dict):
        """Verification lists every mismatch."""
        del config_dict["fidgetInstanceDatums"]["feed:main"]
        config_dict["layoutDetails"]["layoutConfig"]["layout"][0]["x"] = 1
        body = client.post("/api/verify", json={"design": sample_payload, "config": config_dict}).json()
        assert body["ok"] is False
        assert body["issue"]["code"] == "MISSING_IDS"
        assert [i["code"] for i in body["issues"]] == ["MISSING_IDS", "POSITION_MISMATCH"]

    def test_analyze_layout(self, client, config_dict):
        """A config layout is scored."""
        body = client.post("/api/analyze/layout", json={"config": config_dict}).json()
        assert body["verdict"] == "accept"
        assert body["max_row_used"] == 8

    def test_analyze_layout_missing_field(self, client):
        """A config without layoutConfig answers 422."""
        response = client.post("/api/analyze/layout", json={"config": {"layoutDetails": {}}})
        assert response.status_code == 422
        assert response.json()["code"] == "MISSING_FIELD"


class TestToolEndpoints:

    def test_list_tools(self, client):
        """All tools are listed as function schemas."""
        body = client.get("/api/tools").json()
        assert len(body) == 6
        assert all(t["type"] == "function" for t in body)

    def test_run_tool(self, client, config_dict):
        """A tool runs by name."""
        import json

        response = client.post(
            "/api/tools/analyze_layout",
            json={"arguments": {"config_json": json.dumps(config_dict)}},
        )
        body = response.json()
        assert body["success"] is True
        assert body["tool_name"] == "analyze_layout"

    def test_unknown_tool_is_404(self, client):
        """Unknown tools answer 404."""
        assert client.post("/api/tools/nope", json={"arguments": {}}).status_code == 404


class TestCatalogAndHealth:

    def test_catalog(self, client):
        """The catalog exposes grid, sizes and theme."""
        body = client.get("/api/catalog").json()
        assert body["grid"]["width"] == 12
        assert body["grid"]["height"] == 8
        types = {f["type"]: f for f in body["fidgets"]}
        assert types["cast"]["max_height"] == 4
        assert types["feed"]["min_width"] == 4
        assert body["theme"]["id"] == "default-theme"

    def test_health(self, client):
        """Health check."""
        assert client.get("/health").json() == {"status": "ok"}


class TestSpaceEndpoint:

    def test_returns_serialized_pipeline_result(self, client, sample_plan, policy):
        """The pipeline result is returned serialized."""
        research = ResearchData(summary="dogs", key_topics=["dogs"], social_accounts=SocialAccounts())
        config = convert(sample_plan.to_matrix(policy), policy, layout_id="layout-7").config
        result = PipelineResult(
            status=PipelineStatus.DONE,
            research=research,
            design=sample_plan,
            config=config,
            attempts=1,
        )

        with patch("space_builder.server.run_pipeline", return_value=result) as mock_pipeline:
            response = client.post("/api/space", json={"user_request": "dog club", "max_design_attempts": 2})

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "DONE"
        assert body["attempts"] == 1
        assert body["research"]["keyTopics"] == ["dogs"]
        assert body["config"]["layoutID"] == "layout-7"
        assert "fidgetInstanceDatums" in body["config"]
        assert mock_pipeline.call_args.kwargs["max_design_attempts"] == 2

    def test_empty_request_rejected(self, client):
        """An empty request answers 422."""
        assert client.post("/api/space", json={"user_request": ""}).status_code == 422
