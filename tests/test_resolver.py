import unittest
from datetime import timedelta
from unittest import mock

from s3_index.models import (
    ErrorKind,
    Exists,
    HeadFailure,
    ListingPage,
    ListingResult,
    Missing,
    NotFound,
    OpaqueNotFound,
    Redirect,
    ResolutionError,
    StoreObject,
)
from s3_index.resolver import PathResolver
from s3_index.services import BadPresignedUrl, S3ObjectStore, StoreError


class FakeStore:
    """In-memory bucket: ``objects`` maps keys to sizes."""

    def __init__(self, objects=(), head_results=None, list_error=None, presign_error=None):
        self.objects = dict.fromkeys(objects, 1) if not isinstance(objects, dict) else objects
        self.head_results = head_results or {}
        self.list_error = list_error
        self.presign_error = presign_error
        self.head_calls = []
        self.list_calls = []
        self.presign_calls = []

    def head_object(self, key):
        self.head_calls.append(key)
        if key in self.head_results:
            return self.head_results[key]
        return Exists() if key in self.objects else Missing()

    def list_objects(self, prefix, delimiter="/", continuation_token=None):
        self.list_calls.append((prefix, continuation_token))
        if self.list_error is not None:
            raise self.list_error
        dirs = []
        contents = []
        for key in sorted(self.objects):
            if not key.startswith(prefix):
                continue
            rest = key[len(prefix):]
            if delimiter in rest:
                common = prefix + rest.split(delimiter, 1)[0] + delimiter
                if common not in dirs:
                    dirs.append(common)
            else:
                contents.append(StoreObject(key, self.objects[key], "2024-01-01"))
        return ListingPage(common_prefixes=dirs, contents=contents)

    def presign(self, key, expires_in):
        self.presign_calls.append((key, expires_in))
        if self.presign_error is not None:
            raise self.presign_error
        return f"https://signed.example.com/{key}"


class PathResolverTests(unittest.TestCase):
    def test_existing_object_redirects(self):
        store = FakeStore(["a/b"])

        result = PathResolver(store).resolve("/a/b")

        self.assertEqual(Redirect(key="a/b", url="https://signed.example.com/a/b"), result)
        self.assertEqual([("a/b", timedelta(hours=24))], store.presign_calls)
        self.assertEqual([], store.list_calls)

    def test_presign_expiry_is_configurable(self):
        store = FakeStore(["a"])

        PathResolver(store, presign_expiry=timedelta(minutes=5)).resolve("/a")

        self.assertEqual([("a", timedelta(minutes=5))], store.presign_calls)

    def test_missing_object_falls_back_to_listing(self):
        store = FakeStore(["a/b/one.txt", "a/b/two.txt", "a/b/sub/three.txt"])

        result = PathResolver(store).resolve("/a/b")

        self.assertIsInstance(result, ListingResult)
        listing = result.listing
        self.assertEqual("a/b/", listing.prefix)
        self.assertEqual("a/", listing.parent)
        self.assertEqual(["sub/", "one.txt", "two.txt"], [item.name for item in listing.items])
        self.assertEqual(["a/b"], store.head_calls)
        self.assertEqual([("a/b/", None)], store.list_calls)

    def test_opaque_not_found_is_treated_as_missing(self):
        store = FakeStore(["a/b/one.txt"], head_results={"a/b": OpaqueNotFound(404)})

        result = PathResolver(store).resolve("/a/b")

        self.assertIsInstance(result, ListingResult)

    def test_missing_everything_is_not_found(self):
        store = FakeStore(["other.txt"])

        self.assertEqual(NotFound(), PathResolver(store).resolve("/missing"))
        self.assertEqual([("missing/", None)], store.list_calls)

    def test_nodir_skips_listing(self):
        store = FakeStore(["missing/inside.txt"])

        result = PathResolver(store).resolve("/missing", nodir=True)

        self.assertEqual(NotFound(), result)
        self.assertEqual([], store.list_calls)

    def test_fallback_can_be_disabled(self):
        store = FakeStore(["a/b/one.txt"], head_results={"a/b": OpaqueNotFound(404)})

        result = PathResolver(store, directory_fallback=False).resolve("/a/b")

        self.assertEqual(NotFound(), result)
        self.assertEqual([], store.list_calls)

    def test_nodir_still_redirects_existing_objects(self):
        store = FakeStore(["a/b"])

        self.assertIsInstance(PathResolver(store).resolve("/a/b", nodir=True), Redirect)

    def test_root_of_empty_bucket_is_not_found(self):
        store = FakeStore([])

        self.assertEqual(NotFound(), PathResolver(store).resolve("/"))
        self.assertEqual([("", None)], store.list_calls)
        self.assertEqual([], store.head_calls)

    def test_trailing_separator_lists_without_head(self):
        store = FakeStore(["a/x.txt"])

        result = PathResolver(store).resolve("/a/")

        self.assertIsInstance(result, ListingResult)
        self.assertEqual([], store.head_calls)

    def test_root_listing_has_no_parent(self):
        store = FakeStore(["x.txt"])

        result = PathResolver(store).resolve("/")

        self.assertIsNone(result.listing.parent)

    def test_decodes_percent_escapes(self):
        store = FakeStore(["dir with space/café.txt"])

        result = PathResolver(store).resolve("/dir%20with%20space/caf%C3%A9.txt")

        self.assertEqual("dir with space/café.txt", result.key)

    def test_encoding_errors(self):
        store = FakeStore([])

        result = PathResolver(store).resolve("/%FF")

        self.assertEqual(ErrorKind.ENCODING, result.kind)
        self.assertEqual([], store.head_calls)

    def test_missing_leading_separator(self):
        with self.assertLogs("s3_index.resolver", level="ERROR"):
            result = PathResolver(FakeStore([])).resolve("a/b")

        self.assertEqual(ErrorKind.BAD_PATH, result.kind)
        self.assertTrue(result.kind.is_client_error)

    def test_head_failure_is_store_error(self):
        store = FakeStore(head_results={"a": HeadFailure("throttled")})

        result = PathResolver(store).resolve("/a")

        self.assertEqual(ResolutionError(ErrorKind.STORE, "throttled"), result)
        self.assertFalse(result.kind.is_client_error)
        self.assertEqual([], store.list_calls)

    def test_listing_failure_is_store_error(self):
        store = FakeStore(list_error=StoreError("listing failed"))

        result = PathResolver(store).resolve("/a/")

        self.assertEqual(ErrorKind.STORE, result.kind)

    def test_presign_failure(self):
        store = FakeStore(["a"], presign_error=BadPresignedUrl("bad"))

        result = PathResolver(store).resolve("/a")

        self.assertEqual(ErrorKind.PRESIGN, result.kind)

    def test_non_positive_expiry_is_presign_error(self):
        client = mock.Mock()
        store = S3ObjectStore("bucket-one", client_factory=lambda *_, **__: client)

        result = PathResolver(store, presign_expiry=timedelta(0)).resolve("/a")

        self.assertEqual(ErrorKind.PRESIGN, result.kind)
        self.assertFalse(result.kind.is_client_error)
        client.generate_presigned_url.assert_not_called()

    def test_protocol_error(self):
        class LoopingStore(FakeStore):
            def list_objects(self, prefix, delimiter="/", continuation_token=None):
                self.list_calls.append((prefix, continuation_token))
                return ListingPage(contents=[StoreObject(prefix + "x", 1)], next_token="again")

        store = LoopingStore()

        result = PathResolver(store).resolve("/")

        self.assertEqual(ErrorKind.PROTOCOL, result.kind)
        self.assertEqual(2, len(store.list_calls))

    def test_head_result_types_are_distinct(self):
        self.assertNotEqual(Missing(), OpaqueNotFound(404))
        self.assertNotEqual(Exists(), Missing())


if __name__ == "__main__":
    unittest.main()
