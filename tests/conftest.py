"""
Shared test fixtures.
"""

import sys
from pathlib import Path

# Add project directory to Python path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

import pytest

from models.credentials import Credentials
from services.catalog_index import CatalogIndex
from services.dedup_tracker import DedupTracker
from services.destination_gateway import DestinationGateway
from services.rate_limiter import SlidingWindowRateLimiter
from services.source_gateway import SourceGateway
from tests.factories import VariantFactory
from tests.fakes import FakeClock, FakeDestinationClient, FakeSourceClient


# ===================
# CLOCK
# ===================

@pytest.fixture
def clock():
    """Manual clock; its sleep() advances time instead of blocking."""
    return FakeClock()


# ===================
# CATALOG
# ===================

@pytest.fixture
def scallops_variants():
    """Two SCALLOPS colors on one product plus an unrelated product."""
    return [
        VariantFactory.create(sku="WP-SCALLOPS-SKY-2748", product_id="P1", color="Sky"),
        VariantFactory.create(sku="WP-SCALLOPS-DUS-2748", product_id="P1", color="Dusty Rose"),
        VariantFactory.create(sku="WP-HERRING-BLU-2748", product_id="P2", color="Blue"),
    ]


@pytest.fixture
def catalog_index(scallops_variants):
    """CatalogIndex over the SCALLOPS fixture."""
    return CatalogIndex(scallops_variants, total_products=2)


# ===================
# COLLABORATORS
# ===================

@pytest.fixture
def source_client():
    return FakeSourceClient()


@pytest.fixture
def destination_client():
    return FakeDestinationClient()


@pytest.fixture
def credentials():
    return Credentials(access_token="token-1", refresh_token="refresh-1")


@pytest.fixture
def limiter(clock):
    """Generous limiter on the fake clock."""
    return SlidingWindowRateLimiter(
        limit=100,
        window_ms=60000,
        clock=clock.now_ms,
        sleep=clock.sleep,
    )


@pytest.fixture
def gateway(source_client, credentials, limiter, clock):
    """SourceGateway over the fake source; retries never block."""
    return SourceGateway(
        client=source_client,
        credentials=credentials,
        limiter=limiter,
        retry_max_attempts=3,
        retry_base_delay_seconds=0.01,
        retry_max_delay_seconds=0.05,
        sleep=clock.sleep,
    )


@pytest.fixture
def dedup():
    return DedupTracker()


@pytest.fixture
def destination(destination_client, clock):
    """DestinationGateway over the fake destination; waits never block."""
    return DestinationGateway(
        client=destination_client,
        retry_max_attempts=3,
        retry_base_delay_seconds=0.01,
        retry_max_delay_seconds=0.05,
        quota_max_attempts=3,
        quota_max_wait_ms=5000,
        sleep=clock.sleep,
    )
