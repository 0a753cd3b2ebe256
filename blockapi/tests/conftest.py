"""
Pytest configuration and fixtures for the block editor API tests.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from blockapi.main import app
from blockapi.routes.blocks import get_assembly
from blockengine.kernel.assembly import BlockAssembly, MemoryStorage
from blockengine.kernel.renderer import MemoryTemplateLoader
from blockengine.kernel.tests.helpers import gallery_definition


@pytest.fixture
def assembly():
    """A fresh in-memory assembly holding the gallery block."""
    a = BlockAssembly(
        MemoryStorage(),
        MemoryTemplateLoader(
            {
                "gallery": '<section class="{{className}}"><h2>{{field.title}}</h2></section>',
                "preview-gallery": "<em>{{field.title}}</em>",
            }
        ),
    )
    a.save(gallery_definition())
    return a


@pytest.fixture
def client(assembly):
    """TestClient wired to the fixture assembly."""
    app.dependency_overrides[get_assembly] = lambda: assembly
    yield TestClient(app)
    app.dependency_overrides.clear()
