"""Pytest configuration and fixtures for SiteAgent tests."""

import pytest
from pathlib import Path

from siteagent.config import Settings


@pytest.fixture
def tmp_workspace(tmp_path: Path) -> Path:
    """Create a temporary working directory for tests."""
    workspace = tmp_path / "workspace"
    workspace.mkdir()
    return workspace


@pytest.fixture
def settings(tmp_workspace: Path) -> Settings:
    """Settings rooted in the temporary workspace with 'site' as output dir."""
    return Settings(
        api_key="test-key",
        output_dir=Path("site"),
        work_dir=tmp_workspace,
        max_turns=10,
    )


@pytest.fixture
def gemini_tool_call_payload() -> dict:
    """generateContent payload carrying one executeCommand call."""
    return {
        "candidates": [
            {
                "content": {
                    "role": "model",
                    "parts": [
                        {
                            "functionCall": {
                                "name": "executeCommand",
                                "args": {"command": "mkdir site"},
                            }
                        }
                    ],
                },
                "finishReason": "STOP",
            }
        ]
    }


@pytest.fixture
def gemini_text_payload() -> dict:
    """generateContent payload with a final text answer."""
    return {
        "candidates": [
            {
                "content": {"role": "model", "parts": [{"text": "Your site is ready."}]},
                "finishReason": "STOP",
            }
        ]
    }
