from __future__ import annotations

import argparse
import builtins
import json
from collections.abc import Sequence

from httpobs.config import get_settings
from httpobs.observation.context import ExchangeContext, RequestDescriptor
from httpobs.observation.convention import HttpObservationConvention, client_convention, server_convention


def _error_instance(name: str | None) -> BaseException | None:
    if not name:
        return None
    error_type = getattr(builtins, name, None)
    if not (isinstance(error_type, type) and issubclass(error_type, BaseException)):
        raise SystemExit(f"Unknown builtin exception: {name}")
    return error_type()


def build_context(args: argparse.Namespace) -> ExchangeContext:
    request = RequestDescriptor(method=args.method, uri=args.uri) if args.uri is not None else None
    return ExchangeContext(
        request,
        uri_template=args.template,
        response_status=args.status,
        error=_error_instance(args.error),
        aborted=bool(args.aborted),
    ).freeze()


def describe(convention: HttpObservationConvention, context: ExchangeContext) -> dict:
    return {
        "name": convention.name,
        "contextual_name": convention.get_contextual_name(context),
        "low_cardinality": convention.get_low_cardinality_key_values(context).to_dict(),
        "high_cardinality": convention.get_high_cardinality_key_values(context).to_dict(),
    }


def main(argv: Sequence[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Print the observation tags for one HTTP exchange")
    parser.add_argument("--side", choices=("client", "server"), default="client", help="Which convention to apply")
    parser.add_argument("--method", default=None, help="Request method, e.g. GET")
    parser.add_argument("--uri", default=None, help="Raw request URI (omit for 'no request')")
    parser.add_argument("--template", default=None, help="Resolved URI template, e.g. /users/{id}")
    parser.add_argument("--status", type=int, default=None, help="Response status code, if one was received")
    parser.add_argument("--aborted", action="store_true", help="Mark the exchange as cancelled")
    parser.add_argument("--error", default=None, help="Builtin exception class name, e.g. OSError")
    args = parser.parse_args(argv)

    settings = get_settings()
    if args.side == "server":
        convention = server_convention(name=settings.server_observation_name)
    else:
        convention = client_convention(name=settings.client_observation_name)

    print(json.dumps(describe(convention, build_context(args)), indent=2))


if __name__ == "__main__":
    main()
