import sys
import argparse
from dataclasses import asdict
from easypy.bunch import Bunch


def main():
    parser = argparse.ArgumentParser(
        description="NFS Remote Volume Driver")
    parser.set_defaults(func=lambda *_, **__: parser.print_help())
    parser.add_argument("--output", default="json", choices=['json', 'yaml'], help="Output format")

    subparsers = parser.add_subparsers()

    info_parse = subparsers.add_parser("info", help='Print versioning information for this driver')
    info_parse.set_defaults(func=_info)

    activate_parse = subparsers.add_parser("activate", help='Activate the backend on the storage API')
    activate_parse.set_defaults(func=_activate)

    create_parse = subparsers.add_parser("create", help='Create a volume')
    create_parse.add_argument("name")
    create_parse.add_argument(
        "-o", "--opt", dest="opts", action="append", default=[], metavar="KEY=VALUE", help="Volume option"
    )
    create_parse.set_defaults(func=_create)

    remove_parse = subparsers.add_parser("remove", help='Remove a volume')
    remove_parse.add_argument("name")
    remove_parse.add_argument("--force", action="store_true", help="Force deletion")
    remove_parse.set_defaults(func=_remove)

    get_parse = subparsers.add_parser("get", help='Show volume metadata and config')
    get_parse.add_argument("name")
    get_parse.set_defaults(func=_get)

    list_parse = subparsers.add_parser("list", help='List volumes')
    list_parse.set_defaults(func=_list)

    attach_parse = subparsers.add_parser("attach", help='Mount a volume locally (needs root or sudo)')
    attach_parse.add_argument("name")
    attach_parse.set_defaults(func=_attach)

    detach_parse = subparsers.add_parser("detach", help='Unmount a locally mounted volume')
    detach_parse.add_argument("name")
    detach_parse.set_defaults(func=_detach)

    test_parse = subparsers.add_parser("test", help='Start unit tests')
    test_parse.set_defaults(func=_test)

    args = parser.parse_args(namespace=Bunch())
    args.pop("func")(args)


def _dump(data, output):
    if output == "yaml":
        import yaml
        yaml.dump(data, sys.stdout)
    elif output == "json":
        import json
        json.dump(data, sys.stdout, indent=2)
        sys.stdout.write("\n")
    else:
        assert False, f"invalid output format: {output}"


def _parse_opts(opts):
    parsed = {}
    for opt in opts:
        key, sep, value = opt.partition("=")
        if not sep or not key:
            raise SystemExit(f"invalid option {opt!r}, expected KEY=VALUE")
        parsed[key] = value
    return parsed


def _run(operation):
    """Build the driver from environment configuration and run `operation` on it."""
    from .configuration import Config
    from .driver import NfsRemoteDriver
    from .exceptions import NfsDriverException
    from .logging import init_logging

    conf = Config()
    init_logging(level=conf.log_level)
    if not conf.ssl_verify:
        import urllib3

        urllib3.disable_warnings()
    try:
        return operation(NfsRemoteDriver.from_config(conf))
    except NfsDriverException as exc:
        print(exc.render(color=False), file=sys.stderr)
        sys.exit(1)


def _info(args):
    from .configuration import Config
    conf = Config()
    info = dict(
        name=conf.plugin_name, version=conf.plugin_version,
        storage_api_url=conf.storage_api_url, backend=conf.backend_name,
        local_mount_root=str(conf.local_mount_root),
    )
    _dump(info, args.output)


def _activate(args):
    _run(lambda driver: driver.activate())


def _create(args):
    opts = _parse_opts(args.opts)
    _run(lambda driver: driver.create_volume(args.name, opts))


def _remove(args):
    _run(lambda driver: driver.remove_volume(args.name, force_delete=args.force))


def _get(args):
    metadata, config = _run(lambda driver: driver.get_volume(args.name))
    _dump(dict(volume=asdict(metadata), config=asdict(config)), args.output)


def _list(args):
    volumes = _run(lambda driver: driver.list_volumes())
    _dump([asdict(v) for v in volumes], args.output)


def _attach(args):
    mountpoint = _run(lambda driver: driver.attach(args.name))
    _dump(dict(name=args.name, mountpoint=mountpoint), args.output)


def _detach(args):
    _run(lambda driver: driver.detach(args.name))


def _test(args):
    """Runs the tests without code coverage"""
    import pytest
    sys.exit(pytest.main(["-x", "tests", "-s", "-v"]))


if __name__ == '__main__':
    main()
