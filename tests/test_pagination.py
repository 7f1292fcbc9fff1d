"""Tests for the pagination normalizer."""

from scmkit.models import ListOptions
from scmkit.pagination import normalize, parse_link_header, parse_rate

GITEA_LINK = (
    '<https://demo.gitea.com/api/v1/repos/jcitizen/my-repo/pulls?limit=2&page=3>; rel="next",'
    '<https://demo.gitea.com/api/v1/repos/jcitizen/my-repo/pulls?limit=2&page=5>; rel="last",'
    '<https://demo.gitea.com/api/v1/repos/jcitizen/my-repo/pulls?limit=2&page=1>; rel="first",'
    '<https://demo.gitea.com/api/v1/repos/jcitizen/my-repo/pulls?limit=2&page=1>; rel="prev"'
)


class TestParseLinkHeader:
    """Tests for parse_link_header."""

    def test_all_relations(self) -> None:
        links = parse_link_header(GITEA_LINK)
        assert set(links) == {"next", "last", "first", "prev"}
        assert links["next"].endswith("page=3")

    def test_empty(self) -> None:
        assert parse_link_header("") == {}

    def test_multiple_rels(self) -> None:
        links = parse_link_header('<https://example.com/?page=1>; rel="first prev"')
        assert links["first"] == links["prev"]


class TestNormalize:
    """Tests for normalize."""

    def test_link_header(self) -> None:
        page = normalize({"Link": GITEA_LINK}, options=ListOptions(page=2, size=2))
        assert page.page == 2
        assert page.size == 2
        assert page.next == 3
        assert page.prev == 1
        assert page.first == 1
        assert page.last == 5
        assert page.has_next
        assert page.hints["link"] == GITEA_LINK

    def test_link_header_last_page(self) -> None:
        link = '<https://example.com/items?page=1>; rel="first", <https://example.com/items?page=4>; rel="prev"'
        page = normalize({"link": link}, options=ListOptions(page=5))
        assert page.next is None
        assert not page.has_next
        assert page.prev == 4

    def test_full_page_without_signal_has_no_next(self) -> None:
        body = [{"id": i} for i in range(30)]
        page = normalize({}, body, ListOptions(page=1, size=30))
        assert page.next is None
        assert not page.has_next

    def test_total_count_is_advisory(self) -> None:
        page = normalize({"X-Total-Count": "100"}, [], ListOptions(page=1, size=10))
        assert page.total == 100
        assert page.next is None

    def test_link_wins_over_total_count(self) -> None:
        headers = {
            "Link": '<https://example.com/items?page=2>; rel="next"',
            "X-Total-Count": "5",
        }
        page = normalize(headers, options=ListOptions(page=1, size=10))
        assert page.next == 2
        assert page.total == 5

    def test_echo_headers(self) -> None:
        headers = {
            "X-Page": "2",
            "X-Per-Page": "20",
            "X-Next-Page": "3",
            "X-Prev-Page": "1",
            "X-Total-Pages": "4",
            "X-Total": "70",
        }
        page = normalize(headers)
        assert page.page == 2
        assert page.size == 20
        assert page.next == 3
        assert page.prev == 1
        assert page.first == 1
        assert page.last == 4
        assert page.total == 70

    def test_echo_headers_last_page(self) -> None:
        page = normalize({"X-Page": "4", "X-Next-Page": "", "X-Prev-Page": "3"})
        assert page.next is None
        assert page.prev == 3

    def test_has_more_header(self) -> None:
        page = normalize({"X-HasMore": "true"}, options=ListOptions(page=3))
        assert page.next == 4

    def test_has_more_false(self) -> None:
        page = normalize({"X-HasMore": "false"}, options=ListOptions(page=3))
        assert page.next is None

    def test_body_envelope(self) -> None:
        body = {"size": 25, "limit": 25, "start": 25, "isLastPage": False, "nextPageStart": 50, "values": []}
        page = normalize({}, body)
        assert page.page == 2
        assert page.size == 25
        assert page.next == 3
        assert page.prev == 1
        assert page.hints["nextPageStart"] == "50"

    def test_body_envelope_last_page(self) -> None:
        body = {"size": 3, "limit": 25, "start": 0, "isLastPage": True, "values": []}
        page = normalize({}, body)
        assert page.page == 1
        assert page.next is None
        assert page.prev is None

    def test_body_envelope_page_from_start(self) -> None:
        body = {"limit": 10, "start": 20, "isLastPage": False}
        page = normalize({}, body, ListOptions(page=1, size=10))
        assert page.page == 3
        assert page.next == 4

    def test_body_envelope_without_start_uses_requested_page(self) -> None:
        body = {"isLastPage": False}
        page = normalize({}, body, ListOptions(page=3, size=10))
        assert page.page == 3
        assert page.next == 4

    def test_no_signals(self) -> None:
        page = normalize({"Content-Type": "application/json"}, [])
        assert page.page == 1
        assert page.next is None
        assert page.hints == {}


class TestParseRate:
    """Tests for parse_rate."""

    def test_rate_headers(self) -> None:
        rate = parse_rate({"X-RateLimit-Limit": "5000", "X-RateLimit-Remaining": "4999", "X-RateLimit-Reset": "1372700873"})
        assert rate is not None
        assert rate.limit == 5000
        assert rate.remaining == 4999
        assert rate.reset == 1372700873

    def test_no_rate_headers(self) -> None:
        assert parse_rate({}) is None
