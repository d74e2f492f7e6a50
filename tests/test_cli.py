"""CLI argument handling."""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from stableswap import config
from stableswap.cli import bootstrap_command, build_parser
from stableswap.core.exceptions import BootstrapStepError


class TestParser:

    def test_bootstrap_defaults(self):
        args = build_parser().parse_args(["bootstrap"])

        assert args.command == "bootstrap"
        assert args.url == "http://localhost:8899"
        assert args.deposit is None
        assert not args.verbose

    def test_bootstrap_options(self):
        args = build_parser().parse_args([
            "bootstrap", "--url", "http://127.0.0.1:9000", "--deposit", "1000000000", "--timeout", "60",
        ])

        assert args.url == "http://127.0.0.1:9000"
        assert args.deposit == 1_000_000_000
        assert args.timeout == 60.0

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestBootstrapCommand:

    @pytest.mark.asyncio
    async def test_failure_exit_code(self):
        args = build_parser().parse_args(["bootstrap", "--fixture", ""])
        client = MagicMock()
        client.__aenter__ = AsyncMock(return_value=client)
        client.__aexit__ = AsyncMock(return_value=False)
        failure = BootstrapStepError("fund payer", RuntimeError("faucet down"), [])

        with patch("stableswap.cli.SolanaClient", return_value=client) as client_cls, \
                patch("stableswap.cli.run_bootstrap", new=AsyncMock(side_effect=failure)):
            assert await bootstrap_command(args) == 1

        assert client_cls.call_args.kwargs["timeout_seconds"] == config.RPC_TIMEOUT_SECONDS
