"""Tech stack detection — maps package.json dependencies to display labels."""

from __future__ import annotations

import base64
import binascii
import json
from collections.abc import Iterable, Mapping

from errors import PayloadError
from models import TechCategory, TechStackItem

# Exact package name -> label. Anything not listed is dropped.
TECH_MAPPINGS: dict[str, TechStackItem] = {
    "next": TechStackItem(name="Next.js", category=TechCategory.FRONTEND),
    "react": TechStackItem(name="React", category=TechCategory.FRONTEND),
    "vue": TechStackItem(name="Vue.js", category=TechCategory.FRONTEND),
    "svelte": TechStackItem(name="Svelte", category=TechCategory.FRONTEND),
    "@supabase/supabase-js": TechStackItem(name="Supabase", category=TechCategory.BACKEND),
    "stripe": TechStackItem(name="Stripe", category=TechCategory.BACKEND),
    "tailwindcss": TechStackItem(name="TailwindCSS", category=TechCategory.FRONTEND),
    "@prisma/client": TechStackItem(name="Prisma", category=TechCategory.DATABASE),
    "drizzle-orm": TechStackItem(name="Drizzle", category=TechCategory.DATABASE),
    "express": TechStackItem(name="Express", category=TechCategory.BACKEND),
    "hono": TechStackItem(name="Hono", category=TechCategory.BACKEND),
    "typescript": TechStackItem(name="TypeScript", category=TechCategory.FRONTEND),
    "vite": TechStackItem(name="Vite", category=TechCategory.INFRASTRUCTURE),
    "framer-motion": TechStackItem(name="Framer Motion", category=TechCategory.FRONTEND),
    "zod": TechStackItem(name="Zod", category=TechCategory.OTHER),
    "@tanstack/react-query": TechStackItem(name="React Query", category=TechCategory.FRONTEND),
}

MANIFEST_PATH = "package.json"
_DEPENDENCY_GROUPS = ("dependencies", "devDependencies")


def detect_from_dependencies(dependencies: Iterable[str]) -> list[TechStackItem]:
    """Look up each dependency name in TECH_MAPPINGS, keeping input order."""
    return [TECH_MAPPINGS[dep] for dep in dependencies if dep in TECH_MAPPINGS]


def detect_from_manifest(manifest: Mapping) -> list[TechStackItem]:
    """Detect the stack from a parsed package.json.

    Runtime and dev dependencies are merged like a dict union: a package
    listed in both keeps its first position and appears once.
    """
    merged: dict[str, object] = {}
    for group in _DEPENDENCY_GROUPS:
        deps = manifest.get(group)
        if isinstance(deps, Mapping):
            merged.update(deps)
    return detect_from_dependencies(merged)


def decode_manifest(content_b64: str) -> dict:
    """Decode the base64 `content` field of a GitHub contents response."""
    try:
        raw = base64.b64decode(content_b64, validate=False)
        manifest = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError, TypeError) as e:
        raise PayloadError(f"{MANIFEST_PATH} is not valid JSON: {e}", source="github") from e
    if not isinstance(manifest, dict):
        raise PayloadError(f"{MANIFEST_PATH} is not a JSON object", source="github")
    return manifest
