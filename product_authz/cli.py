# product_authz/cli.py
"""
Developer and deploy-time tooling for the product authorization pipeline.

Example usage:
  # Print the route table
  product-authz routes

  # Fail the build if the SAM template deploys a route the table does not know
  product-authz validate-template template.yaml

  # Ask the configured policy store for one decision
  POLICY_STORE_ID=ps-123 product-authz evaluate --subject u1 \
      --route "GET /product/{book_id}" --param book_id=42 --group admin

  # Show a policy
  POLICY_STORE_ID=ps-123 product-authz policy <policy-id>
"""
from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Dict, List, Set, Tuple

import yaml

from product_authz.claims import Principal
from product_authz.config import Settings
from product_authz.decision import AuthorizationRequest, DecisionClient
from product_authz.errors import AuthorizationError
from product_authz.routes import RouteTable
from product_authz.verdict import Verdict


class TemplateLoader(yaml.SafeLoader):
    """SafeLoader that accepts CloudFormation short-form tags (!Ref, !Sub, ...)."""


def _cfn_tag(loader, tag_suffix, node):
    if isinstance(node, yaml.ScalarNode):
        value = loader.construct_scalar(node)
    elif isinstance(node, yaml.SequenceNode):
        value = loader.construct_sequence(node, deep=True)
    else:
        value = loader.construct_mapping(node, deep=True)
    return {tag_suffix: value}


TemplateLoader.add_multi_constructor("!", _cfn_tag)


def load_template(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.load(f, Loader=TemplateLoader) or {}


def deployed_routes(template: Dict[str, Any]) -> Set[Tuple[str, str]]:
    """Collect (METHOD, path) for every Api event of every function."""
    routes = set()
    for resource in (template.get("Resources") or {}).values():
        if not isinstance(resource, dict) or resource.get("Type") != "AWS::Serverless::Function":
            continue
        events = (resource.get("Properties") or {}).get("Events") or {}
        for event in events.values():
            if event.get("Type") != "Api":
                continue
            props = event.get("Properties") or {}
            routes.add((str(props.get("Method", "")).upper(), str(props.get("Path", ""))))
    return routes


def validate_template(path: str, table: RouteTable) -> List[str]:
    problems = []
    deployed = deployed_routes(load_template(path))
    declared = {route.key for route in table}

    for method, template in sorted(deployed - declared):
        problems.append(f"deployed route {method} {template} has no action in the route table")
    for method, template in sorted(declared - deployed):
        problems.append(f"route {method} {template} is declared but never deployed")
    return problems


def _parse_params(pairs: List[str]) -> Dict[str, str]:
    params = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep:
            raise argparse.ArgumentTypeError(f"expected key=value, got {pair!r}")
        params[key] = value
    return params


def cli(argv=None):
    parser = argparse.ArgumentParser(prog="product-authz", description="Product authorization tooling")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("routes", help="Print the route table")

    v = sub.add_parser("validate-template", help="Check a SAM template against the route table")
    v.add_argument("template", help="Path to the SAM template (YAML)")

    e = sub.add_parser("evaluate", help="Request one decision from the policy store")
    e.add_argument("--subject", required=True, help="Principal subject id")
    e.add_argument("--route", required=True, help='Route, e.g. "GET /product/{book_id}"')
    e.add_argument("--param", action="append", default=[], help="Path parameter key=value")
    e.add_argument("--query", action="append", default=[], help="Query parameter key=value")
    e.add_argument("--group", action="append", default=[], help="Group membership")

    p = sub.add_parser("policy", help="Show a policy from the policy store")
    p.add_argument("policy_id")

    args = parser.parse_args(argv)
    table = RouteTable()

    if args.command == "routes":
        for route in table:
            resource = route.resource_type + (f"({route.id_param})" if route.id_param else "")
            print(f"{route.method:6} {route.template:24} {route.action.value:14} {resource}")
        return 0

    if args.command == "validate-template":
        problems = validate_template(args.template, table)
        for problem in problems:
            print(f"[✗] {problem}")
        if problems:
            return 1
        print(f"[✓] {len(table)} routes match {args.template}")
        return 0

    try:
        client = DecisionClient.from_settings(Settings.from_env())

        if args.command == "policy":
            print(json.dumps(client.describe_policy(args.policy_id), indent=2, default=str))
            return 0

        method, _, template = args.route.partition(" ")
        action, resource = table.normalize(
            method, template.strip(), _parse_params(args.param), _parse_params(args.query)
        )
        request = AuthorizationRequest(
            Principal(args.subject, groups=args.group), action, resource, context=_parse_params(args.query)
        )
        verdict = client.evaluate(request)
    except (AuthorizationError, argparse.ArgumentTypeError) as err:
        print(f"[✗] {err}")
        return 1

    print(f"{verdict.value} {action.value} {resource.type}:{resource.id or '-'}")
    return 0 if verdict is Verdict.ALLOW else 2


def main():
    sys.exit(cli())


if __name__ == "__main__":
    main()
