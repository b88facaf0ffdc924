# License: BSD3

"""
Helpers for the command line front end
"""

import argparse


def command_name(module):
    """
    Name of the subcommand a module implements: its `NAME` constant if
    it has one, else the last component of its dotted name
    """
    return getattr(module, 'NAME', None) or module.__name__.rsplit('.', 1)[-1]


def command_help(module):
    """
    (help, epilog) for a subcommand module: the summary line of its
    docstring, and the rest of the docstring if there is any
    """
    lines = (module.__doc__ or '').strip().splitlines()
    if not lines:
        return None, None
    epilog = '\n'.join(lines[1:]).strip()
    return lines[0].strip(), epilog or None


def add_subcommand(subparsers, module):
    """
    Register a treegraft subcommand module and return its parser.
    The module's own `config_argparser` still has to add its flags.
    """
    summary, epilog = command_help(module)
    return subparsers.add_parser(
        command_name(module), help=summary, description=summary,
        epilog=epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter)
