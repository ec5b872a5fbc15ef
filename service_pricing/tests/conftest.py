"""
Shared fixtures for pricing core tests.
"""

import copy
from pathlib import Path
from typing import Any, Dict

import pytest
import yaml

from service_pricing.app.parser import PricingParser

FIXTURES_DIR = Path(__file__).parent / "fixtures"

BASE_DOCUMENT: Dict[str, Any] = {
    "syntaxVersion": "2.0",
    "saasName": "Test SaaS",
    "createdAt": "2024-08-31",
    "currency": "EUR",
    "features": {
        "haveCalendar": {
            "type": "CAPABILITY",
            "valueType": "BOOLEAN",
            "defaultValue": False,
        },
        "maxPets": {
            "type": "CAPABILITY",
            "valueType": "NUMERIC",
            "defaultValue": 2,
        },
    },
    "usageLimits": {
        "maxPets": {
            "type": "NON_RENEWABLE",
            "valueType": "NUMERIC",
            "defaultValue": 2,
            "unit": "pet",
            "linkedFeatures": ["maxPets"],
        },
    },
    "plans": {
        "BASIC": {"price": 0},
    },
}


def load_fixture(name: str) -> Dict[str, Any]:
    """Load a YAML fixture the way a collaborator would decode it."""
    with open(FIXTURES_DIR / name, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


@pytest.fixture
def base_document():
    """Minimal valid canonical document; safe to mutate."""
    return copy.deepcopy(BASE_DOCUMENT)


@pytest.fixture
def petclinic_document():
    """Full canonical Petclinic document."""
    return load_fixture("petclinic.yml")


@pytest.fixture
def parser():
    """Create PricingParser instance."""
    return PricingParser()


@pytest.fixture
def petclinic(parser, petclinic_document):
    """Parsed Petclinic PricingManager."""
    return parser.parse(petclinic_document)


@pytest.fixture
def fixture_loader():
    """Loader for the YAML fixtures directory."""
    return load_fixture
