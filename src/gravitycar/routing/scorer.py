"""Wildcard path scoring.

Routes are matched by score rather than by regex. For a path of length
``L`` the component at index ``i`` weighs ``L - i``; a literal match earns
twice its weight, a wildcard earns its weight once, and anything else
disqualifies the route. Literal segments therefore always outrank
wildcards at the same position, and earlier positions dominate later ones.
"""

import logging
from collections.abc import Sequence

from gravitycar.routing.paths import is_wildcard, parse_path_components
from gravitycar.routing.route import RouteRecord

logger = logging.getLogger("gravitycar.routing")

EXACT_MATCH_MULTIPLIER = 2
WILDCARD_MATCH_MULTIPLIER = 1


class PathScorer:
    """Scores registered routes against a client path."""

    def score_route(self, client_components: Sequence[str], registered_components: Sequence[str]) -> int:
        """Score one registered path against the client path.

        Returns 0 when the component counts differ or any component is
        neither a literal match nor a wildcard.
        """
        length = len(client_components)
        if length != len(registered_components):
            return 0

        total = 0
        for i, (client, registered) in enumerate(zip(client_components, registered_components, strict=True)):
            score = self.score_component(client, registered, length - i)
            if score == 0:
                return 0
            total += score
        return total

    def score_component(self, client: str, registered: str, weight: int) -> int:
        if client == registered:
            return weight * EXACT_MATCH_MULTIPLIER
        if is_wildcard(registered):
            return weight * WILDCARD_MATCH_MULTIPLIER
        return 0

    def find_best_match(self, method: str, path: str, routes: Sequence[RouteRecord]) -> RouteRecord | None:
        """Return the highest-scoring route, or None when every score is 0.

        Ties keep the route seen first.
        """
        client_components = parse_path_components(path)
        best: RouteRecord | None = None
        best_score = 0

        for route in routes:
            score = self.score_route(client_components, route.path_components)
            logger.debug("score %s %s -> %s: %d", method, path, route.path, score)
            if score > best_score:
                best = route
                best_score = score

        if best is None:
            logger.debug("no scoring route for %s %s among %d candidates", method, path, len(routes))
        else:
            logger.debug("best match for %s %s: %s (score %d)", method, path, best.path, best_score)
        return best
