"""Shared pytest fixtures for formwright tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from formwright.core import ir
from formwright.core.parser import compile_template
from formwright.runtime import FormInstanceService, InMemoryStore, SQLiteStore

LISTING_TEMPLATE = """\
---
formConfig:
  autoSubmitOnSignature: true
  submitTrigger: signature
---
# Vendor Listing Agreement

Please review the listing details below.

## Property Details

Confirm the property information.

This was pre-filled from the listing.

### Property Address
- field: address
- required: true
- chip: listing.address

### Sale Price
- field: salePrice
- type: currency
- min: 0
- chip: listing.salePrice

### Interest Level
- field: interestLevel
- type: select
- options: [High, Medium, Low]
- required: true

- if: interestLevel == high
  ### Follow-up Notes
    - type: textarea
    - maxLength: 500
  - if: salePrice > 500000
    ### Premium Package
      - type: checkbox
      - options: Photography, Staging, Drone Footage

---

### Contact Email
- type: email
- chip: vendor.email

---page-break---

## Signatures

### Vendor Signature
- type: signature
- required: true
- signatory: vendor
- captureTimestamp: true
"""


class FixedClock:
    """Clock returning a controllable, timezone-aware time."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 3, 1, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def listing_template() -> str:
    """Return a template exercising every construct of the DSL."""
    return LISTING_TEMPLATE


@pytest.fixture
def listing_ast() -> ir.FormAST:
    """Return the compiled listing template."""
    return compile_template(LISTING_TEMPLATE).ast


@pytest.fixture
def chip_context() -> dict:
    """Return a chip context with vendor, campaign and listing namespaces."""
    return {
        "vendor": {"name": "Jane Doe", "email": "jane@example.com"},
        "campaign": {"name": "Spring Campaign"},
        "listing": {"address": "12 Harbour St", "salePrice": 750000},
    }


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture(params=["memory", "sqlite"])
def store(request: pytest.FixtureRequest, tmp_path: Path):
    """Yield each store implementation."""
    if request.param == "memory":
        yield InMemoryStore()
    else:
        sqlite_store = SQLiteStore(tmp_path / "formwright.db")
        yield sqlite_store
        sqlite_store.close()


@pytest.fixture
def service(store, clock: FixedClock) -> FormInstanceService:
    return FormInstanceService(store, clock=clock)
