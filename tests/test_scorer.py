"""Tests for gravitycar.routing.paths and gravitycar.routing.scorer — path scoring."""

from gravitycar.routing.paths import dynamic_positions, is_wildcard, parse_path_components, path_length
from gravitycar.routing.route import RouteRecord
from gravitycar.routing.scorer import PathScorer


def _route(path: str, method: str = "GET", api_method: str = "handle") -> RouteRecord:
    return RouteRecord.build(
        {"method": method, "path": path, "apiClass": "X", "apiMethod": api_method},
        "tests.X",
    )


class TestPathComponents:
    def test_root_has_no_components(self) -> None:
        assert parse_path_components("/") == []
        assert parse_path_components("") == []

    def test_splits_on_slash(self) -> None:
        assert parse_path_components("/Users/123") == ["Users", "123"]

    def test_trailing_slash_ignored(self) -> None:
        assert parse_path_components("/Users/123/") == ["Users", "123"]

    def test_path_length(self) -> None:
        assert path_length("/metadata/routes/Users") == 3

    def test_wildcards(self) -> None:
        assert is_wildcard("?")
        assert is_wildcard("{id}")
        assert not is_wildcard("{}")
        assert not is_wildcard("Users")

    def test_dynamic_positions(self) -> None:
        assert dynamic_positions(["Movies", "?", "poster", "{size}"]) == [1, 3]


class TestScoreRoute:
    def test_exact_match_doubles_weight(self) -> None:
        scorer = PathScorer()
        # weights 2, 1 -> 2*2 + 1*2
        assert scorer.score_route(["Users", "list"], ["Users", "list"]) == 6

    def test_wildcard_earns_weight_once(self) -> None:
        scorer = PathScorer()
        # 2*2 for Users, 1*1 for the wildcard
        assert scorer.score_route(["Users", "42"], ["Users", "?"]) == 5

    def test_brace_wildcard_scores_like_marker(self) -> None:
        scorer = PathScorer()
        assert scorer.score_route(["Users", "42"], ["Users", "{id}"]) == 5

    def test_length_mismatch_scores_zero(self) -> None:
        scorer = PathScorer()
        assert scorer.score_route(["Users"], ["Users", "?"]) == 0

    def test_literal_mismatch_disqualifies(self) -> None:
        scorer = PathScorer()
        assert scorer.score_route(["Movies", "42"], ["Users", "?"]) == 0

    def test_empty_paths(self) -> None:
        assert PathScorer().score_route([], []) == 0


class TestFindBestMatch:
    def test_picks_same_length_route(self) -> None:
        routes = [_route("/Users"), _route("/Users/?")]
        best = PathScorer().find_best_match("GET", "/Users/42", routes)
        assert best is not None
        assert best.path == "/Users/?"

    def test_literal_beats_wildcard(self) -> None:
        routes = [_route("/?/?", api_method="generic"), _route("/Users/?", api_method="specific")]
        best = PathScorer().find_best_match("GET", "/Users/42", routes)
        assert best is not None
        assert best.api_method == "specific"

    def test_earlier_literal_outranks_later_literal(self) -> None:
        routes = [_route("/?/deleted", api_method="deleted"), _route("/Users/?", api_method="users")]
        # Users/? -> 4 + 1, ?/deleted -> 2 + 2
        best = PathScorer().find_best_match("GET", "/Users/deleted", routes)
        assert best is not None
        assert best.api_method == "users"

    def test_tie_keeps_first_seen(self) -> None:
        routes = [_route("/?/?", api_method="first"), _route("/{model}/{id}", api_method="second")]
        best = PathScorer().find_best_match("GET", "/Users/42", routes)
        assert best is not None
        assert best.api_method == "first"

    def test_no_match_returns_none(self) -> None:
        routes = [_route("/Movies/?"), _route("/Users")]
        assert PathScorer().find_best_match("GET", "/Books/1", routes) is None

    def test_empty_candidate_list(self) -> None:
        assert PathScorer().find_best_match("GET", "/Users", []) is None
