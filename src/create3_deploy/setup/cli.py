#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from ..config.deploy_config import DeployConfig, load_config
from ..config.logging_config import get_cli_logger, log_deployment
from ..config.network import get_explorer_url
from ..config.singletons import FACTORY, MULTICALL, get_singleton
from ..exceptions import ConfigError, SingletonConfigError
from ..helpers.web3_setup import resolve_connection
from .bootstrap import ensure_singleton
from .deployer import Create3Deployer, DeployRequest
from .ledger import record_deployment
from .predictor import predict_address, predict_address_offline
from .verification import verify_contract


def _parse_types(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [t.strip() for t in raw.split(",") if t.strip()]


def _parse_args_json(raw: str | None) -> list[Any]:
    if not raw:
        return []
    try:
        values = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"--args is not valid JSON: {e}") from e
    if not isinstance(values, list):
        raise ConfigError("--args must be a JSON array")
    return values


def _resolve_salt(args: argparse.Namespace, config: DeployConfig) -> str:
    salt = args.salt or config.salt_for(args.target)
    if not salt:
        raise ConfigError(f"No salt given and target {args.target} has no create3Salt")
    return salt


def _setup(args: argparse.Namespace):
    logger = get_cli_logger(debug=args.debug, to_files=not args.no_log_files)
    config = load_config(args.config, env_file=args.env_file)
    return logger, config


def cmd_bootstrap(args: argparse.Namespace) -> int:
    try:
        logger, config = _setup(args)
        singletons = [get_singleton(config, FACTORY)]
        if not args.skip_multicall:
            try:
                singletons.append(get_singleton(config, MULTICALL))
            except SingletonConfigError as e:
                raise SingletonConfigError(f"{e}; pass --skip-multicall to bootstrap the factory only") from e

        connection = resolve_connection(config, args.target, rpc_url=args.rpc_url)
        print(f"Target: {args.target} (chain {connection.chain.chain_id})")
        print(f"Operator: {connection.signer_address}")

        for singleton in singletons:
            label = singleton.label
            report = ensure_singleton(connection, singleton, timeout=args.timeout)
            if report.already_present:
                print(f"✓ {label} already deployed at {report.address}")
            else:
                print(f"✅ {label} deployed at {report.address}")
                if report.funding_tx:
                    print(f"   Funding tx: {report.funding_tx} ({report.funding_amount} wei)")
                if report.deploy_tx:
                    print(f"   Deploy tx: {report.deploy_tx}")
            logger.debug(f"{label} states: {[s.value for s in report.states]}")
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_predict(args: argparse.Namespace) -> int:
    try:
        _, config = _setup(args)
        salt = _resolve_salt(args, config)
        connection = resolve_connection(config, args.target, rpc_url=args.rpc_url)
        deployer = args.deployer or connection.signer_address

        factory_address = get_singleton(config, FACTORY).address
        if args.offline:
            predicted = predict_address_offline(factory_address, deployer, salt)
        else:
            predicted = predict_address(connection, deployer, salt, factory_address)

        print(f"Deployer: {deployer}")
        print(f"Factory: {factory_address}")
        print(f"Salt: {salt}")
        print(f"Predicted address: {predicted}")
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_deploy(args: argparse.Namespace) -> int:
    try:
        logger, config = _setup(args)
        connection = resolve_connection(config, args.target, rpc_url=args.rpc_url)

        verification = None
        if not args.skip_verification:
            verification = config.verification_for(args.target)
            if args.verify and verification is None:
                raise ConfigError(f"No contract verification configured for target {args.target}")

        request = DeployRequest(
            contract_name=args.contract,
            contract_path=args.path or f"{args.contract}.sol",
            salt=_resolve_salt(args, config),
            constructor_args=_parse_args_json(args.args),
            constructor_types=_parse_types(args.types),
            verification=verification,
            source_prefix=args.source_prefix,
        )

        print(f"Target: {args.target} (chain {connection.chain.chain_id})")
        print(f"Deployer: {connection.signer_address}")

        deployer = Create3Deployer.from_config(
            connection,
            config,
            receipt_timeout=args.timeout,
        )
        outcome = deployer.deploy(request)
        log_deployment(logger, request.contract_name, outcome)

        if outcome.already_deployed:
            print(f"✓ {request.contract_name} already deployed at {outcome.address}")
        else:
            print(f"✅ {request.contract_name} deployed at {outcome.address}")
            print(f"   Transaction: {outcome.transaction_hash}")
            print(f"   Gas used: {outcome.gas_used}")

        explorer = get_explorer_url(connection.chain.chain_id)
        if explorer:
            print(f"   Explorer: {explorer}/address/{outcome.address}")

        if outcome.verified is True:
            print("   Verified: yes")
        elif outcome.verified is False:
            print(f"   ⚠️  Verification failed: {outcome.verification_error}")

        if args.ledger:
            ledger_path = Path(args.ledger_file) if args.ledger_file else config.ledger_path
            if record_deployment(ledger_path, args.target, request, outcome, connection.signer_address):
                print(f"   Ledger: {ledger_path}")
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_verify(args: argparse.Namespace) -> int:
    try:
        _, config = _setup(args)
        descriptor = config.verification_for(args.target)
        if descriptor is None:
            raise ConfigError(f"No contract verification configured for target {args.target}")

        result = verify_contract(
            args.address,
            args.contract,
            args.path or f"{args.contract}.sol",
            _parse_args_json(args.args),
            _parse_types(args.types),
            descriptor,
            source_prefix=args.source_prefix or config.source_prefix,
        )
        if result.success:
            print(f"✅ Verified {args.contract} at {args.address}")
            return 0
        print(f"Verification failed: {result.error}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--target", required=True, help="Deployment target name from the config")
    p.add_argument("--config", help="Path to the deploy config JSON (default create3.config.json)")
    p.add_argument("--env-file", help="Path to .env file to load before resolving ${VAR} placeholders")
    p.add_argument("--rpc-url", help="Override the target network's RPC URL")
    p.add_argument("--debug", action="store_true", help="Verbose logging")
    p.add_argument("--no-log-files", action="store_true", help="Log to the console only")


def _add_contract(p: argparse.ArgumentParser) -> None:
    p.add_argument("--contract", required=True, help="Contract name (e.g. UniversalDexDepositor)")
    p.add_argument("--path", help="Source file relative to the source prefix (default <contract>.sol)")
    p.add_argument("--args", help='Constructor arguments as a JSON array, e.g. \'["0xabc...", 1]\'')
    p.add_argument("--types", help="Constructor argument types, comma-separated (e.g. address,uint256)")
    p.add_argument("--source-prefix", help="Source directory for verification (default paths.sources or src)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Deterministic CREATE3 deployments")
    sub = parser.add_subparsers(dest="cmd")

    # bootstrap
    p_boot = sub.add_parser("bootstrap", help="Deploy the CREATE3 factory and Multicall3 if missing")
    _add_common(p_boot)
    p_boot.add_argument("--skip-multicall", action="store_true", help="Only ensure the CREATE3 factory")
    p_boot.add_argument("--timeout", type=float, default=60, help="Confirmation timeout in seconds (default 60)")
    p_boot.set_defaults(func=cmd_bootstrap)

    # predict
    p_pred = sub.add_parser("predict", help="Show the address a salt deploys to")
    _add_common(p_pred)
    p_pred.add_argument("--salt", help="32-byte hex salt (default: the target's create3Salt)")
    p_pred.add_argument("--deployer", help="Deployer address (default: the target wallet)")
    p_pred.add_argument("--offline", action="store_true", help="Derive locally instead of asking the factory")
    p_pred.set_defaults(func=cmd_predict)

    # deploy
    p_dep = sub.add_parser("deploy", help="Deploy a contract through the CREATE3 factory")
    _add_common(p_dep)
    _add_contract(p_dep)
    p_dep.add_argument("--salt", help="32-byte hex salt (default: the target's create3Salt)")
    verify_group = p_dep.add_mutually_exclusive_group()
    verify_group.add_argument("--verify", action="store_true", help="Require source verification")
    verify_group.add_argument("--skip-verification", action="store_true", help="Never verify the source")
    p_dep.add_argument("--ledger", action=argparse.BooleanOptionalAction, default=True, help="Record the deployment in the ledger")
    p_dep.add_argument("--ledger-file", help="Ledger path (default paths.ledger or deployments.json)")
    p_dep.add_argument("--timeout", type=float, default=300, help="Receipt timeout in seconds (default 300)")
    p_dep.set_defaults(func=cmd_deploy)

    # verify
    p_ver = sub.add_parser("verify", help="Verify an already deployed contract")
    _add_common(p_ver)
    _add_contract(p_ver)
    p_ver.add_argument("--address", required=True, help="Deployed contract address")
    p_ver.set_defaults(func=cmd_verify)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return 2
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
