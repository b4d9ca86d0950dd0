"""
Shopify Admin GraphQL client (destination catalog).

Covers the catalog query, the staged upload handshake
(stagedUploadsCreate -> multipart POST -> fileCreate), asset polling
and product metafield writes.
"""

import json
import time
from typing import Any, Callable, Optional, Sequence

import requests
import structlog

from models.catalog import CatalogPage, Variant
from models.transfer import AssetCategory, CommittedAsset, StagedTarget
from exceptions import (
    AssetCommitError,
    ExternalServiceError,
    MetadataUpdateError,
    QuotaExceededError,
    StagedUploadError,
    TransientNetworkError,
)

logger = structlog.get_logger(__name__)

SERVICE = "shopify"


# ===================
# GRAPHQL DOCUMENTS
# ===================

PRODUCTS_QUERY = """
query getProducts($first: Int!, $after: String, $query: String) {
  products(first: $first, after: $after, query: $query) {
    edges {
      node {
        id
        title
        handle
        productType
        tags
        variants(first: 100) {
          edges {
            node {
              id
              sku
              title
              price
              inventoryQuantity
              selectedOptions { name value }
            }
          }
        }
      }
    }
    pageInfo { hasNextPage endCursor }
  }
}
"""

STAGED_UPLOADS_CREATE = """
mutation stagedUploadsCreate($input: [StagedUploadInput!]!) {
  stagedUploadsCreate(input: $input) {
    stagedTargets {
      url
      resourceUrl
      parameters { name value }
    }
    userErrors { field message }
  }
}
"""

FILE_CREATE = """
mutation fileCreate($files: [FileCreateInput!]!) {
  fileCreate(files: $files) {
    files {
      id
      fileStatus
      ... on MediaImage { image { url } }
      ... on GenericFile { url }
    }
    userErrors { field message }
  }
}
"""

FILE_STATUS_QUERY = """
query fileStatus($id: ID!) {
  node(id: $id) {
    ... on MediaImage { id fileStatus image { url } }
    ... on GenericFile { id fileStatus url }
  }
}
"""

PRODUCT_METAFIELD_QUERY = """
query productMetafield($id: ID!, $namespace: String!, $key: String!) {
  product(id: $id) {
    metafield(namespace: $namespace, key: $key) { id value }
  }
}
"""

METAFIELDS_SET = """
mutation metafieldsSet($metafields: [MetafieldsSetInput!]!) {
  metafieldsSet(metafields: $metafields) {
    metafields { id namespace key }
    userErrors { field message code }
  }
}
"""


def _asset_url(node: dict) -> Optional[str]:
    """Public URL of a MediaImage or GenericFile node, if present."""
    image = node.get("image") or {}
    return image.get("url") or node.get("url")


def _user_error_message(user_errors: list) -> str:
    return "; ".join(e.get("message", "unknown error") for e in user_errors)


class ShopifyClient:
    """
    Destination store client.

    Every call is a single GraphQL POST; throttling surfaces as
    QuotaExceededError and 5xx/timeouts as TransientNetworkError.
    """

    def __init__(
        self,
        shop_domain: str,
        access_token: str,
        api_version: str = "2024-10",
        timeout: float = 30.0,
        color_option_names: Sequence[str] = ("color", "colour"),
        image_metafield: tuple[str, str] = ("wallpaper", "color_images"),
        spec_metafield: tuple[str, str] = ("custom", "spec_sheets"),
        poll_max_attempts: int = 5,
        poll_initial_delay_seconds: float = 2.0,
        poll_backoff: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
        session: Optional[requests.Session] = None,
    ):
        domain = shop_domain.replace("https://", "").replace("http://", "").rstrip("/")
        self.endpoint = f"https://{domain}/admin/api/{api_version}/graphql.json"
        self.access_token = access_token
        self.timeout = timeout
        self.color_option_names = {name.lower() for name in color_option_names}
        self.metafields = {
            AssetCategory.IMAGE: image_metafield,
            AssetCategory.SPEC: spec_metafield,
        }
        self.poll_max_attempts = poll_max_attempts
        self.poll_initial_delay_seconds = poll_initial_delay_seconds
        self.poll_backoff = poll_backoff
        self._sleep = sleep
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings) -> "ShopifyClient":
        if not settings.shopify_configured:
            raise ExternalServiceError(SERVICE, "Shopify credentials not configured")
        return cls(
            shop_domain=settings.shopify_shop_domain,
            access_token=settings.shopify_access_token,
            api_version=settings.shopify_api_version,
            timeout=settings.http_timeout_seconds,
            color_option_names=settings.color_option_names,
            image_metafield=(settings.image_metafield_namespace, settings.image_metafield_key),
            spec_metafield=(settings.spec_metafield_namespace, settings.spec_metafield_key),
            poll_max_attempts=settings.asset_poll_max_attempts,
            poll_initial_delay_seconds=settings.asset_poll_initial_delay_seconds,
            poll_backoff=settings.asset_poll_backoff,
        )

    # ===================
    # TRANSPORT
    # ===================

    def _graphql(self, document: str, variables: dict, operation: str) -> dict:
        """
        POST a GraphQL document and return its `data` object.

        Raises:
            QuotaExceededError: 429 or a THROTTLED error
            TransientNetworkError: 5xx, timeout or connection failure
            ExternalServiceError: Any other failure or GraphQL error
        """
        try:
            response = self.session.post(
                self.endpoint,
                json={"query": document, "variables": variables},
                headers={
                    "X-Shopify-Access-Token": self.access_token,
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
            )
        except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
            logger.warning("shopify_request_failed", operation=operation, error=str(e))
            raise TransientNetworkError(SERVICE, f"Shopify {operation} failed: {e}") from e
        except requests.exceptions.RequestException as e:
            logger.error("shopify_request_failed", operation=operation, error=str(e))
            raise ExternalServiceError(SERVICE, f"Shopify {operation} failed: {e}") from e

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise QuotaExceededError(
                SERVICE,
                "Shopify API throttled",
                retry_after=float(retry_after) if retry_after else None,
            )
        if response.status_code >= 500:
            raise TransientNetworkError(
                SERVICE,
                f"Shopify {operation} failed with {response.status_code}",
                details={"status": response.status_code},
            )
        if not response.ok:
            raise ExternalServiceError(
                SERVICE,
                f"Shopify {operation} failed with {response.status_code}",
                details={"status": response.status_code, "body": response.text[:200]},
            )

        payload = response.json()
        errors = payload.get("errors")
        if errors:
            if isinstance(errors, list) and any(
                (e.get("extensions") or {}).get("code") == "THROTTLED" for e in errors
            ):
                raise QuotaExceededError(SERVICE, "Shopify API throttled")
            logger.error("shopify_graphql_errors", operation=operation, errors=errors)
            message = errors[0].get("message") if isinstance(errors, list) else str(errors)
            raise ExternalServiceError(SERVICE, f"Shopify {operation} error: {message}")

        return payload.get("data") or {}

    # ===================
    # CATALOG
    # ===================

    def _color_of(self, options: list[dict]) -> Optional[str]:
        for option in options or []:
            if (option.get("name") or "").lower() in self.color_option_names:
                return option.get("value")
        return None

    def fetch_variants(self, query: str, page_size: int, after: Optional[str] = None) -> CatalogPage:
        """
        Fetch one page of products and flatten their SKU'd variants.

        Variants without a color option are returned with color=None.
        """
        variables: dict[str, Any] = {"first": page_size, "query": query}
        if after:
            variables["after"] = after

        data = self._graphql(PRODUCTS_QUERY, variables, "fetch_variants")
        products = data.get("products") or {}
        edges = products.get("edges") or []
        page_info = products.get("pageInfo") or {}

        variants = []
        for edge in edges:
            product = edge.get("node") or {}
            for variant_edge in (product.get("variants") or {}).get("edges") or []:
                node = variant_edge.get("node") or {}
                sku = (node.get("sku") or "").strip()
                if not sku:
                    continue
                variants.append(Variant(
                    id=node["id"],
                    sku=sku,
                    title=node.get("title") or "",
                    price=node.get("price"),
                    inventory_quantity=node.get("inventoryQuantity"),
                    color=self._color_of(node.get("selectedOptions")),
                    product_id=product["id"],
                    product_handle=product.get("handle") or "",
                    product_title=product.get("title") or "",
                    product_type=product.get("productType") or "",
                    tags=frozenset(product.get("tags") or []),
                ))

        return CatalogPage(
            variants=tuple(variants),
            product_count=len(edges),
            has_next_page=bool(page_info.get("hasNextPage")),
            end_cursor=page_info.get("endCursor"),
        )

    # ===================
    # STAGED UPLOAD
    # ===================

    def create_staged_upload(self, filename: str, mime_type: str, size: int) -> StagedTarget:
        """
        Reserve a temporary upload target.

        Raises:
            StagedUploadError: If Shopify returns user errors or no target
        """
        resource = "IMAGE" if mime_type.lower().startswith("image/") else "FILE"
        data = self._graphql(
            STAGED_UPLOADS_CREATE,
            {"input": [{
                "filename": filename,
                "mimeType": mime_type,
                "resource": resource,
                "fileSize": str(size),
                "httpMethod": "POST",
            }]},
            "create_staged_upload",
        )
        result = data.get("stagedUploadsCreate") or {}
        user_errors = result.get("userErrors") or []
        if user_errors:
            raise StagedUploadError(_user_error_message(user_errors), details={"filename": filename})

        targets = result.get("stagedTargets") or []
        if not targets:
            raise StagedUploadError("Failed to get staged upload target", details={"filename": filename})

        target = targets[0]
        return StagedTarget(
            upload_url=target["url"],
            resource_ref=target["resourceUrl"],
            form_fields=tuple((p["name"], p["value"]) for p in target.get("parameters") or []),
        )

    def upload_to_staged_target(self, target: StagedTarget, filename: str, mime_type: str, data: bytes) -> None:
        """
        POST the bytes to the staged target as multipart/form-data.

        requests encodes `data` fields ahead of `files`, so the server's
        parameters precede the file part in their declared order.

        Raises:
            TransientNetworkError: Timeout, connection failure or 5xx
            StagedUploadError: If the upload is rejected or cannot be sent
        """
        try:
            response = self.session.post(
                target.upload_url,
                data=list(target.form_fields),
                files={"file": (filename or "unknown-file", data, mime_type or "application/octet-stream")},
                timeout=self.timeout,
            )
        except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
            logger.warning("staged_upload_interrupted", filename=filename, error=str(e))
            raise TransientNetworkError(SERVICE, f"Staged upload failed: {e}") from e
        except requests.exceptions.RequestException as e:
            raise StagedUploadError(f"Staged upload failed: {e}", details={"filename": filename}) from e

        if response.status_code >= 500:
            raise TransientNetworkError(
                SERVICE,
                f"Staged upload failed with {response.status_code}",
                details={"filename": filename, "status": response.status_code},
            )
        if not response.ok:
            logger.error(
                "staged_upload_rejected",
                filename=filename,
                status=response.status_code,
                body=response.text[:200],
            )
            raise StagedUploadError(
                f"Staged upload failed: {response.status_code}",
                details={"filename": filename, "status": response.status_code},
            )

    def commit_staged_asset(self, resource_ref: str, alt_text: str, content_type: str = "FILE") -> CommittedAsset:
        """
        Turn an uploaded staged resource into a permanent file.

        Raises:
            AssetCommitError: If fileCreate fails or returns no file
        """
        try:
            data = self._graphql(
                FILE_CREATE,
                {"files": [{
                    "alt": alt_text,
                    "contentType": content_type,
                    "originalSource": resource_ref,
                }]},
                "commit_staged_asset",
            )
        except (QuotaExceededError, TransientNetworkError):
            raise
        except ExternalServiceError as e:
            raise AssetCommitError(e.message, details={"resource_ref": resource_ref}) from e

        result = data.get("fileCreate") or {}
        user_errors = result.get("userErrors") or []
        if user_errors:
            raise AssetCommitError(_user_error_message(user_errors), details={"resource_ref": resource_ref})

        files = result.get("files") or []
        if not files or not files[0].get("id"):
            raise AssetCommitError("fileCreate returned no file", details={"resource_ref": resource_ref})

        node = files[0]
        return CommittedAsset(
            asset_id=node["id"],
            status=node.get("fileStatus"),
            public_url=_asset_url(node),
        )

    def poll_asset_until_ready(self, asset_id: str) -> Optional[str]:
        """
        Wait for a committed asset to finish processing.

        Polls up to poll_max_attempts times with a growing delay.

        Returns:
            Public URL once READY, or None if it is still processing

        Raises:
            AssetCommitError: If Shopify reports the file as FAILED
        """
        delay = self.poll_initial_delay_seconds
        for attempt in range(1, self.poll_max_attempts + 1):
            self._sleep(delay)
            data = self._graphql(FILE_STATUS_QUERY, {"id": asset_id}, "poll_asset")
            node = data.get("node") or {}
            status = (node.get("fileStatus") or "").upper()

            if status == "READY":
                return _asset_url(node)
            if status == "FAILED":
                raise AssetCommitError("Shopify failed to process file", details={"asset_id": asset_id})

            logger.debug("asset_still_processing", asset_id=asset_id, attempt=attempt, status=status)
            delay *= self.poll_backoff

        logger.warning("asset_poll_exhausted", asset_id=asset_id, attempts=self.poll_max_attempts)
        return None

    # ===================
    # METADATA
    # ===================

    def _read_metafield(self, product_id: str, namespace: str, key: str) -> Any:
        data = self._graphql(
            PRODUCT_METAFIELD_QUERY,
            {"id": product_id, "namespace": namespace, "key": key},
            "read_metafield",
        )
        metafield = (data.get("product") or {}).get("metafield")
        if not metafield or not metafield.get("value"):
            return None
        try:
            return json.loads(metafield["value"])
        except ValueError:
            logger.warning("metafield_unparseable", product_id=product_id, namespace=namespace, key=key)
            return None

    def set_product_attribute(self, product_id: str, key: str, value: str, category: AssetCategory) -> None:
        """
        Attach an asset reference to a product under a color key.

        Images: JSON object metafield, entry for the color overwritten.
        Spec sheets: JSON list metafield, {"color", "file"} entry appended.

        Raises:
            MetadataUpdateError: If the read or the write fails
        """
        namespace, metafield_key = self.metafields[category]

        try:
            current = self._read_metafield(product_id, namespace, metafield_key)

            if category is AssetCategory.IMAGE:
                merged = current if isinstance(current, dict) else {}
                merged[key] = value
            else:
                merged = current if isinstance(current, list) else []
                merged.append({"color": key, "file": value})

            data = self._graphql(
                METAFIELDS_SET,
                {"metafields": [{
                    "ownerId": product_id,
                    "namespace": namespace,
                    "key": metafield_key,
                    "type": "json",
                    "value": json.dumps(merged),
                }]},
                "set_product_attribute",
            )
        except (QuotaExceededError, TransientNetworkError):
            raise
        except ExternalServiceError as e:
            raise MetadataUpdateError(product_id, e.message, details={"key": key}) from e

        user_errors = (data.get("metafieldsSet") or {}).get("userErrors") or []
        if user_errors:
            raise MetadataUpdateError(product_id, _user_error_message(user_errors), details={"key": key})

        logger.info(
            "product_attribute_set",
            product_id=product_id,
            key=key,
            category=category.value,
            metafield=f"{namespace}.{metafield_key}",
        )
