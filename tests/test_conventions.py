"""Tests for nestbox.conventions: virtual directories end to end."""

import gzip
import zlib
from datetime import timedelta

import pytest

from nestbox.caching import format_http_date, parse_http_date
from nestbox.catalog import ResourceCatalog
from nestbox.config import EmbeddedConfig
from nestbox.conventions import EmbeddedDirectory, StaticContentConventions, normalize_prefix
from nestbox.errors import ConfigurationError
from nestbox.http.request import RequestDescriptor
from nestbox.http.response import EmbeddedResponse


def serve(
    conventions: StaticContentConventions,
    path: str,
    headers: dict[str, str | list[str]] | None = None,
) -> EmbeddedResponse:
    """GET ``/Foo/<path>`` and assert the conventions answered."""
    response = conventions.serve(f"/Foo/{path}", headers)
    assert response is not None
    return response


def text(response: EmbeddedResponse) -> str:
    return response.body_bytes.decode("utf-8")


# ------------------------------------------------------------------
# Resolution
# ------------------------------------------------------------------


class TestResolution:
    def test_serves_root_file(self, conventions) -> None:
        assert text(serve(conventions, "embedded.txt")) == "Embedded Text"

    def test_serves_file_in_subfolder(self, conventions) -> None:
        assert text(serve(conventions, "Subfolder/embedded2.txt")) == "Embedded2 Text"

    def test_serves_file_with_hyphens_in_subfolder(self, conventions) -> None:
        assert text(serve(conventions, "Subfolder-with-hyphen/embedded3.txt")) == "Embedded3 Text"

    def test_serves_urlencoded_dot(self, conventions) -> None:
        assert text(serve(conventions, "embedded%2etxt")) == "Embedded Text"

    def test_serves_relative_path(self, conventions) -> None:
        assert text(serve(conventions, "Subfolder/../embedded.txt")) == "Embedded Text"

    def test_case_insensitive(self, conventions) -> None:
        assert text(serve(conventions, "SUBFOLDER/Embedded2.TXT")) == "Embedded2 Text"

    def test_virtual_directory_is_case_insensitive(self, conventions) -> None:
        response = conventions.serve("/foo/embedded.txt")
        assert response is not None
        assert response.status == 200

    def test_missing_file_is_not_found(self, conventions) -> None:
        response = serve(conventions, "missing.txt")
        assert response.status == 404
        assert response.body_bytes == b"NOT FOUND"
        assert response.header("ETag") is None

    def test_traversal_is_not_found(self, conventions) -> None:
        response = serve(conventions, "../../etc/passwd")
        assert response.status == 404

    def test_encoded_traversal_is_not_found(self, conventions) -> None:
        response = serve(conventions, "%2e%2e/%2e%2e/secret")
        assert response.status == 404

    def test_python_sources_are_not_served(self, conventions) -> None:
        assert serve(conventions, "helpers.py").status == 404

    def test_unbound_prefix_falls_through(self, conventions) -> None:
        assert conventions.serve("/Bar/embedded.txt") is None

    def test_prefix_must_match_whole_segment(self, conventions) -> None:
        assert conventions.serve("/Foobar/embedded.txt") is None

    def test_post_falls_through(self, conventions) -> None:
        assert conventions.serve("/Foo/embedded.txt", method="POST") is None

    def test_head_is_served(self, conventions) -> None:
        response = conventions.serve("/Foo/embedded.txt", method="HEAD")
        assert response is not None
        assert response.status == 200


# ------------------------------------------------------------------
# Headers
# ------------------------------------------------------------------


class TestResponseHeaders:
    def test_full_response_has_validators(self, conventions) -> None:
        response = serve(conventions, "Subfolder/embedded2.txt")

        assert response.status == 200
        assert response.header("ETag")
        last_modified = response.header("Last-Modified")
        assert last_modified is not None
        assert last_modified.endswith(" GMT")
        assert parse_http_date(last_modified) is not None

    def test_content_type_from_extension(self, conventions) -> None:
        assert serve(conventions, "site.css").content_type == "text/css; charset=utf-8"
        assert serve(conventions, "logo.png").content_type == "image/png"

    def test_unknown_extension_gets_octet_stream(self, conventions) -> None:
        assert serve(conventions, "data.bin").content_type == "application/octet-stream"

    def test_binary_content_is_unchanged(self, conventions) -> None:
        assert serve(conventions, "logo.png").body_bytes == b"\x89PNG\r\n\x1a\n"

    def test_etag_is_stable_across_requests(self, conventions) -> None:
        first = serve(conventions, "embedded.txt").header("ETag")
        second = serve(conventions, "embedded.txt").header("ETag")
        assert first == second

    def test_etag_is_stable_without_fingerprint_cache(self, site_package) -> None:
        conventions = StaticContentConventions(EmbeddedConfig(cache_fingerprints=False))
        conventions.bind("/Foo", site_package, "Resources")
        assert serve(conventions, "embedded.txt").header("ETag") == serve(
            conventions, "embedded.txt"
        ).header("ETag")

    def test_different_content_has_different_etag(self, conventions) -> None:
        one = serve(conventions, "embedded.txt").header("ETag")
        two = serve(conventions, "Subfolder/embedded2.txt").header("ETag")
        assert one != two


# ------------------------------------------------------------------
# Conditional requests
# ------------------------------------------------------------------


class TestConditionalRequests:
    def test_not_modified_on_matching_etag(self, conventions) -> None:
        etag = serve(conventions, "Subfolder/embedded2.txt").header("ETag")

        result = serve(conventions, "Subfolder/embedded2.txt", {"If-None-Match": [etag]})

        assert result.status == 304

    def test_not_modified_has_no_body_or_content_type(self, conventions) -> None:
        etag = serve(conventions, "Subfolder/embedded2.txt").header("ETag")

        result = serve(conventions, "Subfolder/embedded2.txt", {"If-None-Match": etag})

        assert result.body_bytes == b""
        assert result.content_type is None

    def test_not_modified_keeps_validators(self, conventions) -> None:
        initial = serve(conventions, "Subfolder/embedded2.txt")

        result = serve(conventions, "Subfolder/embedded2.txt", {"If-None-Match": initial.header("ETag")})

        assert result.header("ETag") == initial.header("ETag")
        assert result.header("Last-Modified") == initial.header("Last-Modified")

    def test_full_response_on_etag_without_leading_quote(self, conventions) -> None:
        etag = serve(conventions, "Subfolder/embedded2.txt").header("ETag")

        result = serve(conventions, "Subfolder/embedded2.txt", {"If-None-Match": etag[1:]})

        assert result.status == 200
        assert text(result) == "Embedded2 Text"

    def test_full_response_on_etag_without_quotes(self, conventions) -> None:
        etag = serve(conventions, "Subfolder/embedded2.txt").header("ETag")

        result = serve(conventions, "Subfolder/embedded2.txt", {"If-None-Match": etag.strip('"')})

        assert result.status == 200

    def test_not_modified_on_matching_date(self, conventions) -> None:
        modified = serve(conventions, "Subfolder/embedded2.txt").header("Last-Modified")

        result = serve(conventions, "Subfolder/embedded2.txt", {"If-Modified-Since": modified})

        assert result.status == 304

    def test_full_response_when_date_is_an_hour_earlier(self, conventions) -> None:
        modified = serve(conventions, "Subfolder/embedded2.txt").header("Last-Modified")
        earlier = format_http_date(parse_http_date(modified) - timedelta(hours=1))

        result = serve(conventions, "Subfolder/embedded2.txt", {"If-Modified-Since": earlier})

        assert result.status == 200

    def test_etag_mismatch_wins_over_stale_date(self, conventions) -> None:
        initial = serve(conventions, "Subfolder/embedded2.txt")
        earlier = format_http_date(
            parse_http_date(initial.header("Last-Modified")) - timedelta(hours=1)
        )

        result = serve(
            conventions,
            "Subfolder/embedded2.txt",
            {"If-Modified-Since": earlier, "If-None-Match": initial.header("ETag")[1:]},
        )

        assert result.status == 200

    def test_etag_mismatch_wins_over_matching_date(self, conventions) -> None:
        initial = serve(conventions, "Subfolder/embedded2.txt")

        result = serve(
            conventions,
            "Subfolder/embedded2.txt",
            {
                "If-Modified-Since": initial.header("Last-Modified"),
                "If-None-Match": '"something-else"',
            },
        )

        assert result.status == 200

    def test_non_latin1_validator_is_a_mismatch(self, conventions) -> None:
        response = serve(conventions, "embedded.txt", {"If-None-Match": '"✓"'})
        assert response.status == 200

    def test_malformed_date_is_ignored(self, conventions) -> None:
        result = serve(conventions, "embedded.txt", {"If-Modified-Since": "not a date"})
        assert result.status == 200


# ------------------------------------------------------------------
# Compression
# ------------------------------------------------------------------


class TestCompression:
    def test_gzip_when_accepted(self, conventions) -> None:
        plain = serve(conventions, "embedded.txt")
        zipped = serve(conventions, "embedded.txt", {"Accept-Encoding": ["gzip"]})

        assert zipped.status == 200
        assert zipped.header("Content-Encoding") == "gzip"
        assert gzip.decompress(zipped.body_bytes) == plain.body_bytes

    def test_deflate_when_only_deflate_accepted(self, conventions) -> None:
        response = serve(conventions, "embedded.txt", {"Accept-Encoding": "deflate"})

        assert response.header("Content-Encoding") == "deflate"
        assert zlib.decompress(response.body_bytes) == b"Embedded Text"

    def test_identity_without_accept_encoding(self, conventions) -> None:
        response = serve(conventions, "embedded.txt")
        assert response.header("Content-Encoding") is None
        assert response.header("Vary") == "Accept-Encoding"

    def test_validators_ignore_encoding(self, conventions) -> None:
        plain = serve(conventions, "embedded.txt")
        zipped = serve(conventions, "embedded.txt", {"Accept-Encoding": "gzip"})

        assert plain.header("ETag") == zipped.header("ETag")
        assert plain.header("Last-Modified") == zipped.header("Last-Modified")

    def test_compression_disabled(self, site_package) -> None:
        conventions = StaticContentConventions(EmbeddedConfig(compress=False))
        conventions.bind("/Foo", site_package, "Resources")

        response = serve(conventions, "embedded.txt", {"Accept-Encoding": "gzip"})

        assert response.header("Content-Encoding") is None
        assert response.header("Vary") is None
        assert response.body_bytes == b"Embedded Text"

    def test_not_modified_is_never_encoded(self, conventions) -> None:
        etag = serve(conventions, "embedded.txt").header("ETag")

        result = serve(conventions, "embedded.txt", {"If-None-Match": etag, "Accept-Encoding": "gzip"})

        assert result.status == 304
        assert result.header("Content-Encoding") is None


# ------------------------------------------------------------------
# Binding
# ------------------------------------------------------------------


class TestBinding:
    def test_prefix_defaults_to_last_segment(self, site_package) -> None:
        conventions = StaticContentConventions()
        directory = conventions.bind("/static/Resources", site_package)

        assert directory.prefix == "/static/Resources"
        assert "embedded.txt" in directory.catalog

    def test_duplicate_prefix_rejected(self, conventions, site_package) -> None:
        with pytest.raises(ConfigurationError, match="already bound"):
            conventions.bind("/foo/", site_package, "Resources")

    def test_empty_prefix_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            normalize_prefix("/")

    def test_unknown_package_rejected(self) -> None:
        conventions = StaticContentConventions()
        with pytest.raises(ConfigurationError, match="not importable"):
            conventions.bind("/x", "nestbox_no_such_package_anywhere")

    def test_directories_checked_in_binding_order(self) -> None:
        conventions = StaticContentConventions()
        conventions.add_directory("/a", ResourceCatalog.from_mapping({"x.txt": "from a"}))
        conventions.add_directory("/b", ResourceCatalog.from_mapping({"x.txt": "from b"}))

        response = conventions.resolve(RequestDescriptor.build("GET", "/b/x.txt"))

        assert response is not None
        assert response.body_bytes == b"from b"
        assert len(conventions) == 2

    def test_lower_case_methods_still_served(self) -> None:
        conventions = StaticContentConventions(EmbeddedConfig(methods=("get",)))
        conventions.add_directory("/a", ResourceCatalog.from_mapping({"x.txt": "x"}))

        response = conventions.resolve(RequestDescriptor.build("get", "/a/x.txt"))

        assert response is not None
        assert response.body_bytes == b"x"

    def test_custom_not_found_body(self) -> None:
        directory = EmbeddedDirectory(
            "/docs",
            ResourceCatalog.from_mapping({}),
            EmbeddedConfig(not_found_body=b"gone"),
        )
        assert directory.respond("nothing.txt").body_bytes == b"gone"


class TestEmbeddedDirectory:
    @pytest.fixture
    def directory(self) -> EmbeddedDirectory:
        return EmbeddedDirectory("/Content/", ResourceCatalog.from_mapping({"a.txt": "A"}))

    def test_relative_path_inside(self, directory) -> None:
        assert directory.relative_path("/Content/a.txt") == "a.txt"
        assert directory.relative_path("/content/sub/a.txt") == "sub/a.txt"

    def test_relative_path_of_prefix_itself(self, directory) -> None:
        assert directory.relative_path("/Content") == ""

    def test_relative_path_outside(self, directory) -> None:
        assert directory.relative_path("/Other/a.txt") is None
        assert directory.relative_path("/Contentious/a.txt") is None

    def test_respond_to_directory_root_is_not_found(self, directory) -> None:
        assert directory.respond("").status == 404
