"""Unit tests for tech stack detection from package.json."""

import base64
import json

import pytest

from errors import PayloadError
from models import TechCategory, TechStackItem
from tech_stack import TECH_MAPPINGS, decode_manifest, detect_from_dependencies, detect_from_manifest


def test_known_dependency_is_mapped_and_unknown_dropped() -> None:
    manifest = {"dependencies": {"react": "^18.0.0", "left-pad": "^1.0.0"}}

    assert detect_from_manifest(manifest) == [TechStackItem(name="React", category=TechCategory.FRONTEND)]


def test_detection_is_deterministic_and_keeps_manifest_order() -> None:
    manifest = {
        "dependencies": {"stripe": "1", "next": "14", "unknown-thing": "0.1"},
        "devDependencies": {"vite": "5", "typescript": "5"},
    }

    first = detect_from_manifest(manifest)
    second = detect_from_manifest(manifest)

    assert first == second
    assert [item.name for item in first] == ["Stripe", "Next.js", "Vite", "TypeScript"]


def test_dependency_listed_in_both_groups_appears_once() -> None:
    manifest = {"dependencies": {"zod": "3"}, "devDependencies": {"zod": "3", "tailwindcss": "3"}}

    assert [item.name for item in detect_from_manifest(manifest)] == ["Zod", "TailwindCSS"]


def test_missing_or_malformed_groups_yield_empty_stack() -> None:
    assert detect_from_manifest({}) == []
    assert detect_from_manifest({"dependencies": ["react"], "devDependencies": None}) == []


def test_lookup_is_exact_match_only() -> None:
    assert detect_from_dependencies(["React", "react-dom", "@prisma/client"]) == [TECH_MAPPINGS["@prisma/client"]]


def test_decode_manifest_handles_github_line_wrapped_base64() -> None:
    raw = json.dumps({"dependencies": {"hono": "4"}}).encode()
    encoded = base64.encodebytes(raw).decode()  # wraps lines like the contents API

    assert decode_manifest(encoded) == {"dependencies": {"hono": "4"}}


@pytest.mark.parametrize(
    "content",
    [
        base64.b64encode(b"{not json").decode(),
        base64.b64encode(b"[1, 2]").decode(),
        None,
    ],
)
def test_decode_manifest_rejects_bad_content(content) -> None:
    with pytest.raises(PayloadError):
        decode_manifest(content)
