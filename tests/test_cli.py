import os
from unittest import mock

import pytest
from typer.testing import CliRunner

from shopify_x402_bridge.cli import app
from shopify_x402_bridge.config import BridgeConfig
from shopify_x402_bridge.database import create_db_engine, create_session_factory, init_db
from shopify_x402_bridge.storage import PaymentStore, ShopConfigStore

runner = CliRunner()

ENV_NAMES = (
    "SHOPIFY_API_KEY", "SHOPIFY_API_SECRET", "SHOPIFY_SCOPES", "HOST", "DATABASE_URL", "PORT",
)


@pytest.fixture(autouse=True)
def clean_env():
    # load_dotenv writes into os.environ; restore it after each test
    with mock.patch.dict(os.environ):
        for name in ENV_NAMES:
            os.environ.pop(name, None)
        yield


def write_env(tmp_path, db_url, api_key="cli_key"):
    env_file = tmp_path / ".env"
    env_file.write_text(
        f"SHOPIFY_API_KEY={api_key}\n"
        "SHOPIFY_API_SECRET=cli_secret\n"
        "HOST=https://cli.test\n"
        f"DATABASE_URL={db_url}\n"
        "PORT=8123\n"
    )
    return env_file


def test_from_env_reads_env_file(tmp_path):
    env_file = write_env(tmp_path, "sqlite:///cli.db")

    config = BridgeConfig.from_env(env_file)

    assert config.shopify.api_key == "cli_key"
    assert config.shopify.scopes == ["write_orders", "read_products"]
    assert config.facilitator.timeout_seconds == 30.0
    assert config.port == 8123


def test_init_writes_example_env(tmp_path):
    output = tmp_path / "example.env"

    result = runner.invoke(app, ["init", "--output", str(output)])

    assert result.exit_code == 0
    assert "SHOPIFY_API_KEY=" in output.read_text()


def test_validate_reports_missing_credentials(tmp_path):
    env_file = write_env(tmp_path, "sqlite:///cli.db", api_key="")

    result = runner.invoke(app, ["validate", "--env-file", str(env_file)])

    assert result.exit_code == 1
    assert "SHOPIFY_API_KEY" in result.output


def test_validate_missing_env_file(tmp_path):
    result = runner.invoke(app, ["validate", "--env-file", str(tmp_path / "nope.env")])

    assert result.exit_code == 1


def test_payments_table(tmp_path):
    db_url = f"sqlite:///{tmp_path / 'cli.db'}"
    env_file = write_env(tmp_path, db_url)

    engine = create_db_engine(BridgeConfig.from_env(env_file).database)
    init_db(engine)
    factory = create_session_factory(engine)
    store = ShopConfigStore(factory)
    store.upsert("cli.myshopify.com", "token", None)
    shop = store.update("cli.myshopify.com", wallet_address="0xW", accepted_token="USDC", accepted_network="base")
    PaymentStore(factory).create(
        shop, tx_hash="0xcli", amount="5", from_address="0xBuyer",
        status="completed", facilitator_status="verified",
    )
    engine.dispose()

    result = runner.invoke(app, ["payments", "cli.myshopify.com", "--env-file", str(env_file)])
    unknown = runner.invoke(app, ["payments", "nobody.myshopify.com", "--env-file", str(env_file)])

    assert result.exit_code == 0
    assert "0xcli" in result.output
    assert unknown.exit_code == 1
