"""
Main CLI entry point for repomirror

- repomirror search / repomirror s     list matching packages, best first
- repomirror download / repomirror dl  download the best match
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List

from .. import __version__
from ..core.config import load_config, resolve_host_config
from ..core.errors import InvalidArgumentError, RepoMirrorError
from ..core.matcher import PackageQuery
from ..core.mirror import DEFAULT_BASE_MIRRORS, BaseMirror, MirrorSet
from ..core.repomd import PackageRecord
from ..core.transport import DEFAULT_TIMEOUT
from . import colors


def _add_query_arguments(parser: argparse.ArgumentParser):
    parser.add_argument('package', help='Package name')
    parser.add_argument('--epoch', default='', help='Required epoch')
    parser.add_argument('--pkg-version', default='', help='Required version')
    parser.add_argument('--release', default='', help='Required release')
    parser.add_argument('--flags', default='',
                        help='Required flags of the first provides entry (EQ, GE, ...)')


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog='repomirror',
        description='Find and download RPM packages from repomd mirrors',
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug output on stderr')
    parser.add_argument('--json', action='store_true', help='JSON output')
    parser.add_argument('--nocolor', action='store_true', help='Disable colors')
    parser.add_argument('-c', '--config', type=Path, default=None,
                        help='Config file (default: /etc/repomirror.conf)')
    parser.add_argument('--arch', default=None, help='Override detected architecture')
    parser.add_argument('--platform-release', default=None,
                        help='Override detected platform release (7, 8)')
    parser.add_argument('--timeout', type=int, default=None, help='Connection timeout in seconds')
    parser.add_argument('--mirror', nargs=2, action='append', metavar=('NAME', 'URL'),
                        help='Mirror template, repeat in priority order (replaces configured mirrors)')

    lse = parser.add_mutually_exclusive_group()
    lse.add_argument('--lse', dest='non_lse', action='store_false', default=None,
                     help='Prefer LSE builds on aarch64')
    lse.add_argument('--nonlse', dest='non_lse', action='store_true', default=None,
                     help='Prefer non-LSE builds')

    subparsers = parser.add_subparsers(dest='command', metavar='<command>')

    search = subparsers.add_parser('search', aliases=['s'], help='List matching packages')
    _add_query_arguments(search)

    download = subparsers.add_parser('download', aliases=['dl'], help='Download the best match')
    _add_query_arguments(download)
    download.add_argument('-d', '--dest', default='.', help='Destination directory (default: .)')

    return parser


def query_from_args(args) -> PackageQuery:
    return PackageQuery(
        name=args.package,
        flags=args.flags,
        epoch=args.epoch,
        version=args.pkg_version,
        release=args.release,
    )


def build_mirror_set(args) -> MirrorSet:
    """Mirrors from command line overrides, config file and host detection."""
    if args.config is not None and not args.config.exists():
        raise InvalidArgumentError(f"config file not found: {args.config}")
    file_config = load_config(args.config)

    host = resolve_host_config(file_config, arch=args.arch,
                               release=args.platform_release)

    if args.mirror:
        bases = [BaseMirror(name, url) for name, url in args.mirror]
    elif file_config.mirrors:
        bases = [BaseMirror(name, url) for name, url in file_config.mirrors]
    else:
        bases = DEFAULT_BASE_MIRRORS

    timeout = args.timeout or file_config.timeout or DEFAULT_TIMEOUT
    return MirrorSet.from_bases(host, bases, non_lse=args.non_lse, timeout=timeout)


def _package_to_dict(pkg: PackageRecord) -> dict:
    return {
        'name': pkg.name,
        'epoch': pkg.epoch,
        'version': pkg.version,
        'release': pkg.release,
        'arch': pkg.arch,
        'nevra': pkg.nevra,
        'href': pkg.location.href,
        'base': pkg.location.base,
        'size': pkg.size_package,
        'provides': [str(cap) for cap in pkg.provides],
    }


def cmd_search(args, mirrors: MirrorSet) -> int:
    packages: List[PackageRecord] = mirrors.search_all(query_from_args(args))

    if args.json:
        print(json.dumps([_package_to_dict(p) for p in packages], indent=2))
        return 0

    for pkg in packages:
        print(f"{colors.nevra(pkg.name, pkg.evr, pkg.arch)}  {colors.dim(pkg.location.href)}")
    return 0


def cmd_download(args, mirrors: MirrorSet) -> int:
    dest_dir = os.path.abspath(args.dest)
    path = mirrors.download_any(query_from_args(args), dest_dir)

    if args.json:
        print(json.dumps({'path': str(path)}))
    else:
        print(colors.success(str(path)))
    return 0


COMMANDS = {
    'search': cmd_search,
    's': cmd_search,
    'download': cmd_download,
    'dl': cmd_download,
}


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    # Configure logging based on verbose flag
    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format='%(name)s - %(levelname)s - %(message)s',
            stream=sys.stderr
        )

    colors.init(nocolor=args.nocolor)

    if not args.command:
        parser.print_help()
        return 1

    try:
        mirrors = build_mirror_set(args)
        return COMMANDS[args.command](args, mirrors)
    except RepoMirrorError as e:
        print(colors.error(f"Error: {e}"), file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
