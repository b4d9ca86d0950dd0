"""
Unit tests for UploadOrchestrator.

Tests cover run tallies, dedup across files, cancellation and the
folder / file-id entry points.
"""

import threading

import pytest

from models.transfer import AssetCategory, TransferState, TransferStatus
from services.catalog_index import CatalogIndex
from services.dedup_tracker import DedupTracker
from services.upload_orchestrator import UploadOrchestrator
from exceptions import CatalogFetchError, ExternalServiceError, FolderLookupError
from tests.factories import CandidateFactory, CatalogPageFactory, VariantFactory


@pytest.fixture
def scal_variant():
    return VariantFactory.create(sku="WP-SCAL-DUS-2424", product_id="P1", color="Dusty Rose")


@pytest.fixture
def orchestrator(gateway, destination_client, scal_variant):
    destination_client.pages = [CatalogPageFactory.create([scal_variant])]
    return UploadOrchestrator(
        gateway=gateway,
        destination=destination_client,
        catalog_query="product_type:Wallpaper",
    )


@pytest.fixture
def scal_index(scal_variant):
    return CatalogIndex([scal_variant], total_products=1)


def _candidates(source_client, *files):
    """Register files on the fake source and return listing candidates."""
    candidates = []
    for file_id, name, mime in files:
        source_client.add_file(file_id, name, mime)
        candidates.append(CandidateFactory.create(source_file_id=file_id, file_name=name, mime_type=mime))
    return candidates


class TestRun:
    """Tests for UploadOrchestrator.run()"""

    def test_spec_then_image_for_same_color(self, orchestrator, source_client, destination_client, scal_index):
        """Should attach a spec once and still allow the image category."""
        # Arrange
        specs = _candidates(source_client, ("s1", "WP-SCAL-DUS_spec.pdf", "application/pdf"))
        images = _candidates(source_client, ("i1", "WP-SCAL-DUS_1.png", "image/png"))
        dedup = DedupTracker()

        # Act
        spec_summary = orchestrator.run(specs, scal_index, AssetCategory.SPEC, dedup=dedup)
        image_summary = orchestrator.run(images, scal_index, AssetCategory.IMAGE, dedup=dedup)

        # Assert
        spec_writes = [w for w in destination_client.attribute_writes if w[3] == AssetCategory.SPEC]
        assert len(spec_writes) == 1
        assert spec_writes[0][:2] == ("P1", "DUS")
        assert spec_writes[0][2] == spec_summary.results[0].destination_asset_id
        assert image_summary.succeeded == 1
        assert image_summary.skipped == 0

    def test_duplicate_pair_updates_metadata_once(self, orchestrator, source_client, destination_client, scal_index):
        """Should produce one METADATA_UPDATED and one already-processed skip."""
        # Arrange
        candidates = _candidates(
            source_client,
            ("s1", "WP-SCAL-DUS_spec.pdf", "application/pdf"),
            ("s2", "WP-SCAL-DUS-specs.pdf", "application/pdf"),
        )

        # Act
        summary = orchestrator.run(candidates, scal_index, AssetCategory.SPEC)

        # Assert
        updated = [r for r in summary.results if TransferState.METADATA_UPDATED in r.states]
        skipped = [r for r in summary.results if r.status == TransferStatus.SKIPPED]
        assert len(updated) == 1
        assert len(skipped) == 1
        assert skipped[0].reason == "already processed"
        assert len(destination_client.calls_to("set_product_attribute")) == 1

    def test_summary_tallies(self, orchestrator, source_client, scal_index):
        """Should count success, skip and error results separately."""
        # Arrange
        candidates = _candidates(
            source_client,
            ("s1", "WP-SCAL-DUS_spec.pdf", "application/pdf"),
            ("s2", "WP-SCALLOPS-DUSTY_ROSE-2748-1.pdf", "application/pdf"),
            ("s3", "WP-SCAL-DUS_spec.png", "image/png"),
        )

        # Act
        summary = orchestrator.run(candidates, scal_index, AssetCategory.SPEC)

        # Assert
        assert summary.total == 3
        assert summary.succeeded == 1
        assert summary.skipped == 2
        assert summary.failed == 0
        assert summary.processed == 3
        assert summary.category == AssetCategory.SPEC
        assert [r.reason for r in summary.results[1:]] == ["invalid filename format", "wrong type"]

    def test_per_file_error_does_not_stop_run(self, orchestrator, source_client, destination_client, scal_index):
        # Arrange
        candidates = _candidates(
            source_client,
            ("i1", "WP-SCAL-DUS_1.png", "image/png"),
            ("i2", "WP-SCAL-DUS_2.png", "image/png"),
        )
        destination_client.fail_next("create_staged_upload", ExternalServiceError("shopify", "down"))

        # Act
        summary = orchestrator.run(candidates, scal_index, AssetCategory.IMAGE)

        # Assert
        assert summary.failed == 1
        assert summary.succeeded == 1

    def test_progress_callback(self, orchestrator, source_client, scal_index):
        candidates = _candidates(
            source_client,
            ("i1", "WP-SCAL-DUS_1.png", "image/png"),
            ("i2", "WP-SCAL-DUS_2.png", "image/png"),
        )
        progress = []

        orchestrator.run(
            candidates,
            scal_index,
            AssetCategory.IMAGE,
            on_progress=lambda done, total, result: progress.append((done, total, result.status)),
        )

        assert progress == [
            (1, 2, TransferStatus.SUCCESS),
            (2, 2, TransferStatus.SKIPPED),
        ]

    def test_cancellation_between_files(self, orchestrator, source_client, scal_index):
        """Should finish the file in flight and stop before the next."""
        # Arrange
        candidates = _candidates(
            source_client,
            ("i1", "WP-SCAL-DUS_1.png", "image/png"),
            ("i2", "WP-SCAL-DUS_2.png", "image/png"),
            ("i3", "WP-SCAL-DUS_3.png", "image/png"),
        )
        cancel = threading.Event()

        # Act - cancel as soon as the first file completes
        summary = orchestrator.run(
            candidates,
            scal_index,
            AssetCategory.IMAGE,
            cancel_event=cancel,
            on_progress=lambda done, total, result: cancel.set(),
        )

        # Assert
        assert summary.cancelled is True
        assert summary.total == 3
        assert summary.processed == 1
        assert len(source_client.calls_to("download_bytes")) == 1

    def test_dry_run_summary(self, orchestrator, source_client, destination_client, scal_index):
        candidates = _candidates(source_client, ("s1", "WP-SCAL-DUS_spec.pdf", "application/pdf"))

        summary = orchestrator.run(candidates, scal_index, AssetCategory.SPEC, dry_run=True)

        assert summary.dry_run is True
        assert summary.succeeded == 1
        assert destination_client.write_calls == []

    def test_empty_run(self, orchestrator, scal_index):
        summary = orchestrator.run([], scal_index, AssetCategory.IMAGE)

        assert summary.total == 0
        assert summary.results == ()


class TestEntryPoints:
    """Tests for run_folder() and run_file_ids()"""

    def test_run_folder(self, orchestrator, source_client, destination_client):
        """Should list the folder, build the catalog and run."""
        # Arrange
        source_client.add_file("s1", "WP-SCAL-DUS_spec.pdf", "application/pdf", folder_id="folder-1")

        # Act
        summary = orchestrator.run_folder("folder-1", AssetCategory.SPEC)

        # Assert
        assert summary.succeeded == 1
        assert len(destination_client.calls_to("fetch_variants")) == 1
        assert source_client.calls_to("get_folder_name")[0][1] == "folder-1"

    def test_run_folder_lookup_failure_propagates(self, orchestrator, source_client, destination_client):
        source_client.fail_next("get_folder_name", ExternalServiceError("google_drive", "File not found"))

        with pytest.raises(FolderLookupError):
            orchestrator.run_folder("missing", AssetCategory.IMAGE)

        assert destination_client.calls_to("fetch_variants") == []

    def test_run_file_ids_fetches_metadata(self, orchestrator, source_client):
        """Should resolve names for bare ids."""
        # Arrange
        source_client.add_file("s1", "WP-SCAL-DUS_spec.pdf", "application/pdf")

        # Act
        summary = orchestrator.run_file_ids(["s1"], AssetCategory.SPEC)

        # Assert
        assert summary.succeeded == 1
        assert summary.results[0].file_name == "WP-SCAL-DUS_spec.pdf"
        assert len(source_client.calls_to("get_metadata")) == 1

    def test_catalog_failure_propagates(self, orchestrator, destination_client):
        destination_client.pages = [ExternalServiceError("shopify", "unauthorized")]

        with pytest.raises(CatalogFetchError):
            orchestrator.run_file_ids(["s1"], AssetCategory.SPEC)

    def test_partial_catalog_is_reported(self, orchestrator, destination_client, scal_variant):
        destination_client.pages = [
            CatalogPageFactory.create([scal_variant], has_next_page=True, end_cursor="c1"),
            ExternalServiceError("shopify", "page 2 failed"),
        ]

        summary = orchestrator.run([], orchestrator.build_catalog_index(), AssetCategory.IMAGE)

        assert summary.catalog_partial is True
