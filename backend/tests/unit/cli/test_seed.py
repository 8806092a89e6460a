from __future__ import annotations

from staffauth.cli.seed import DEFAULT_ACCOUNTS, seed_accounts
from staffauth.models.user import User, UserRole


def test_seed_accounts_is_idempotent(app, session, container):
    first = seed_accounts()
    second = seed_accounts()

    assert first == {"created": len(DEFAULT_ACCOUNTS), "existing": 0}
    assert second == {"created": 0, "existing": len(DEFAULT_ACCOUNTS)}

    admin = session.query(User).filter_by(employee_id="ADM001").one()
    assert admin.role is UserRole.ADMIN
    assert container.hasher.compare("Admin@123", admin.password_hash)


def test_seed_command_prints_summary(app, session, container):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["seed", "users"])

    assert result.exit_code == 0, result.output
    assert "created= 2" in result.output
    assert "ADM001 / Admin@123" in result.output


def test_seed_command_refuses_production(app, session, monkeypatch):
    monkeypatch.setitem(app.config, "APP_ENV", "production")
    runner = app.test_cli_runner()

    result = runner.invoke(args=["seed", "users"])

    assert result.exit_code != 0
    assert "non-production" in result.output
