"""
Engine kernel test configuration.

Shared fixtures: deterministic element ids and small documents.
"""

import itertools

import pytest

from engine.kernel.types import Document, Element


@pytest.fixture
def id_factory():
    """Ids element-n1, element-n2, ... in call order."""
    counter = itertools.count(1)
    return lambda: f"element-n{next(counter)}"


@pytest.fixture
def two_elements():
    """A heading and an image, both at the default position."""
    return Document(
        elements=[
            Element(
                id="e1",
                tag="h1",
                text="Hello",
                style={"position": "absolute", "left": "50px", "top": "50px"},
            ),
            Element(
                id="e2",
                tag="img",
                attributes={"src": "cat.png"},
                style={"position": "absolute", "left": "50px", "top": "50px"},
            ),
        ]
    )
