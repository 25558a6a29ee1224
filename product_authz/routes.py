# product_authz/routes.py
"""Static route table: (method, route template) -> (action, resource)."""
from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Tuple

from product_authz.errors import InvalidRequestError, UnknownRouteError

_TEMPLATE_PARAM = re.compile(r"\{([^}/]+)\}")


class Action(str, enum.Enum):
    LIST_PRODUCTS = "ListProducts"
    GET_PRODUCT = "GetProduct"


@dataclass(frozen=True)
class Resource:
    type: str
    id: Optional[str] = None


@dataclass(frozen=True)
class Route:
    method: str
    template: str
    action: Action
    resource_type: str
    id_param: Optional[str] = None

    @property
    def key(self) -> Tuple[str, str]:
        return (self.method, self.template)

    def __str__(self):
        return f"{self.method} {self.template}"


PRODUCT_ROUTES = (
    Route("GET", "/product", Action.LIST_PRODUCTS, "ProductCollection"),
    Route("GET", "/product/{book_id}", Action.GET_PRODUCT, "Product", id_param="book_id"),
)


class RouteTable:
    """Closed mapping from declared routes to actions.

    Construction fails on a table that is not injective, or whose id parameters
    do not appear in their templates, so a bad table never reaches a request.
    """

    def __init__(self, routes: Iterable[Route] = PRODUCT_ROUTES):
        self._routes: Dict[Tuple[str, str], Route] = {}
        seen_actions: Dict[Action, Route] = {}

        for route in routes:
            route = Route(
                route.method.upper(),
                route.template,
                Action(route.action),
                route.resource_type,
                route.id_param,
            )
            if route.key in self._routes:
                raise UnknownRouteError(f"route declared twice: {route}", reason="duplicate_route")
            if route.action in seen_actions:
                raise UnknownRouteError(
                    f"{route} and {seen_actions[route.action]} share action {route.action.value}",
                    reason="duplicate_action",
                )
            params = set(_TEMPLATE_PARAM.findall(route.template))
            if route.id_param is not None and route.id_param not in params:
                raise UnknownRouteError(
                    f"{route} declares id parameter {route.id_param} missing from its template",
                    reason="bad_id_param",
                )
            self._routes[route.key] = route
            seen_actions[route.action] = route

    def __iter__(self) -> Iterator[Route]:
        return iter(self._routes.values())

    def __len__(self):
        return len(self._routes)

    def lookup(self, method: str, template: str) -> Route:
        route = self._routes.get(((method or "").upper(), template or ""))
        if route is None:
            raise UnknownRouteError(f"no action mapped for {method} {template}")
        return route

    def normalize(
        self,
        method: str,
        template: str,
        path_params: Optional[Mapping[str, str]] = None,
        query_params: Optional[Mapping[str, str]] = None,
    ) -> Tuple[Action, Resource]:
        route = self.lookup(method, template)
        if route.id_param is None:
            return route.action, Resource(route.resource_type)

        resource_id = (path_params or {}).get(route.id_param)
        if not isinstance(resource_id, str) or not resource_id:
            raise InvalidRequestError(f"{route} reached without path parameter {route.id_param}")
        return route.action, Resource(route.resource_type, resource_id)


@dataclass(frozen=True)
class RequestShape:
    method: str
    template: str
    path_params: Mapping[str, str]
    query_params: Mapping[str, str]


def request_from_event(event: Mapping[str, Any]) -> RequestShape:
    """Read the routing fields of an API Gateway REST proxy event."""
    return RequestShape(
        method=event.get("httpMethod") or "",
        template=event.get("resource") or "",
        path_params=dict(event.get("pathParameters") or {}),
        query_params=dict(event.get("queryStringParameters") or {}),
    )
