#!/usr/bin/env python3
"""
zkaccess Developer CLI

Helpers for preparing shielded ownership inputs off-ledger.

Usage:
    zkaccess <command> [subcommand] [options]

Commands:
    nonce       Secret nonce generation
    keys        Ed25519 caller keypairs
    id          Identity hash computation
    commitment  Owner commitment computation
    config      Configuration management

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import argparse
import json
import sys
from enum import Enum
from typing import Any, List, Optional

from zkaccess import __version__
from zkaccess.hardening import ValidationError, require_word


class OutputFormat(Enum):
    """Output format options."""
    JSON = "json"
    YAML = "yaml"


class CLIError(Exception):
    """CLI error with exit code."""
    def __init__(self, message: str, exit_code: int = 1):
        super().__init__(message)
        self.exit_code = exit_code


def format_output(data: Any, fmt: OutputFormat = OutputFormat.JSON) -> str:
    """Format data for output."""
    if fmt == OutputFormat.YAML:
        import yaml
        return yaml.dump(data, default_flow_style=False)
    return json.dumps(data, indent=2, default=str)


class ZkAccessCLI:
    """Main CLI application."""

    def __init__(self):
        self.parser = argparse.ArgumentParser(
            prog="zkaccess",
            description="Shielded ownership developer tools",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        self.parser.add_argument(
            "--version", "-V",
            action="version",
            version=f"zkaccess {__version__}",
        )
        self.parser.add_argument(
            "--format", "-f",
            choices=["json", "yaml"],
            default="json",
            help="Output format (default: json)",
        )
        self.parser.add_argument(
            "--config", "-c",
            help="Load configuration from a YAML file",
        )
        self.parser.add_argument(
            "--quiet", "-q",
            action="store_true",
            help="Suppress non-essential output",
        )

        self.subparsers = self.parser.add_subparsers(dest="command", help="Commands")
        self._register_commands()

    def _register_commands(self) -> None:
        """Register all command groups."""
        self._register_nonce_commands()
        self._register_keys_commands()
        self._register_id_commands()
        self._register_commitment_commands()
        self._register_config_commands()

    def _register_nonce_commands(self) -> None:
        nonce = self.subparsers.add_parser("nonce", help="Secret nonce generation")
        nonce_sub = nonce.add_subparsers(dest="subcommand")
        nonce_sub.add_parser("generate", help="Generate a 32-byte secret nonce")

    def _register_keys_commands(self) -> None:
        keys = self.subparsers.add_parser("keys", help="Ed25519 caller keypairs")
        keys_sub = keys.add_subparsers(dest="subcommand")

        generate = keys_sub.add_parser("generate", help="Generate an Ed25519 keypair")
        generate.add_argument("--pem", action="store_true", help="Include the PKCS#8 PEM private key")

    def _register_id_commands(self) -> None:
        id_cmd = self.subparsers.add_parser("id", help="Identity hash computation")
        id_sub = id_cmd.add_subparsers(dest="subcommand")

        compute = id_sub.add_parser("compute", help="Compute H(public_key, nonce)")
        key = compute.add_mutually_exclusive_group(required=True)
        key.add_argument("--public-key", help="Caller public key (64 hex chars)")
        key.add_argument("--label", help="ASCII label, zero-padded into a test key")
        compute.add_argument("--nonce", required=True, help="Secret nonce (64 hex chars)")

    def _register_commitment_commands(self) -> None:
        commitment = self.subparsers.add_parser("commitment", help="Owner commitment computation")
        commitment_sub = commitment.add_subparsers(dest="subcommand")

        build = commitment_sub.add_parser("build", help="Compute H(domain, H(counter, id))")
        build.add_argument("--id", required=True, dest="owner_id", help="Identity hash (64 hex chars)")
        build.add_argument("--counter", required=True, type=int, help="Instance counter value")
        build.add_argument(
            "--scheme",
            choices=["public_key", "identity"],
            default="public_key",
            help="Commitment scheme (default: public_key)",
        )

    def _register_config_commands(self) -> None:
        """Register config subcommands."""
        config = self.subparsers.add_parser("config", help="Configuration management")
        config_sub = config.add_subparsers(dest="subcommand")

        get = config_sub.add_parser("get", help="Get configuration value")
        get.add_argument("path", help="Config path (e.g., ownership.max_counter)")

        config_sub.add_parser("show", help="Show all configuration")
        config_sub.add_parser("validate", help="Validate configuration")
        config_sub.add_parser("schema", help="Export configuration schema")

    def run(self, args: Optional[List[str]] = None) -> int:
        """Run the CLI."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 0

        try:
            fmt = OutputFormat(parsed.format)
            if parsed.config:
                from zkaccess.config import get_config_manager
                get_config_manager().load_from_file(parsed.config)

            result = self._dispatch(parsed)

            if result is not None:
                print(format_output(result, fmt))

            return 0

        except CLIError as e:
            if not parsed.quiet:
                print(f"Error: {e}", file=sys.stderr)
            return e.exit_code

        except Exception as e:
            if not parsed.quiet:
                print(f"Error: {e}", file=sys.stderr)
            return 1

    def _dispatch(self, args: argparse.Namespace) -> Any:
        """Dispatch command to handler."""
        cmd = args.command
        subcmd = getattr(args, "subcommand", None)

        handler_name = f"_handle_{cmd}_{subcmd}" if subcmd else f"_handle_{cmd}"
        handler = getattr(self, handler_name, None)

        if handler is None:
            raise CLIError(f"Unknown command: {cmd} {subcmd or ''}".rstrip(), exit_code=2)

        return handler(args)

    # Nonce / key handlers
    def _handle_nonce_generate(self, args: argparse.Namespace) -> Any:
        from zkaccess.witness import generate
        return {"nonce": generate().nonce.hex()}

    def _handle_keys_generate(self, args: argparse.Namespace) -> Any:
        from zkaccess.keys import Keypair
        keypair = Keypair.generate()
        result = {
            "public_key": keypair.public_key.hex(),
            "private_key": keypair.private_bytes().hex(),
        }
        if args.pem:
            result["private_key_pem"] = keypair.private_pem().decode("ascii")
        return result

    # Commitment handlers
    def _handle_id_compute(self, args: argparse.Namespace) -> Any:
        from zkaccess.commitment import identity_hash
        from zkaccess.keys import encode_public_key

        try:
            if args.label is not None:
                public_key = encode_public_key(args.label)
            else:
                public_key = require_word(args.public_key, "public_key")
            nonce = require_word(args.nonce, "nonce")
        except (ValidationError, UnicodeEncodeError) as e:
            raise CLIError(str(e)) from e

        return {
            "public_key": public_key.hex(),
            "identity_hash": identity_hash(public_key, nonce).hex(),
        }

    def _handle_commitment_build(self, args: argparse.Namespace) -> Any:
        from zkaccess.commitment import build_commitment
        from zkaccess.ownable import CommitmentScheme

        scheme = CommitmentScheme(args.scheme)
        try:
            commitment = build_commitment(scheme.domain, args.owner_id, args.counter)
        except ValidationError as e:
            raise CLIError(str(e)) from e

        return {
            "scheme": scheme.value,
            "domain": scheme.domain,
            "instance_counter": args.counter,
            "owner_commitment": commitment.hex(),
        }

    # Config handlers
    def _handle_config_get(self, args: argparse.Namespace) -> Any:
        from zkaccess.config import ConfigError, get_config_manager
        mgr = get_config_manager()
        try:
            value = mgr.get(args.path)
        except ConfigError as e:
            raise CLIError(str(e)) from e
        return {"path": args.path, "value": value}

    def _handle_config_show(self, args: argparse.Namespace) -> Any:
        from zkaccess.config import get_config_manager
        mgr = get_config_manager()
        return mgr.config.to_dict()

    def _handle_config_validate(self, args: argparse.Namespace) -> Any:
        from zkaccess.config import get_config_manager
        mgr = get_config_manager()
        errors = mgr.validate()
        return {"valid": len(errors) == 0, "errors": errors}

    def _handle_config_schema(self, args: argparse.Namespace) -> Any:
        from zkaccess.config import get_config_manager
        mgr = get_config_manager()
        return mgr.export_schema()


def main() -> int:
    """CLI entry point."""
    cli = ZkAccessCLI()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
