from unittest.mock import Mock, call, patch
from sqlalchemy.exc import OperationalError
from openstudents.extensions import db
from openstudents.models import AdminSettings
from openstudents.helpers.settings_cache import DEFAULT_SETTINGS, SettingsCache, get_paystack_secret
from openstudents.utils.db import connect_db_with_retry


class FakeClock:

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def db_down():
    return OperationalError("SELECT 1", {}, Exception("connection refused"))


class TestSettingsCache:

    def test_defaults_without_row(self, app):
        assert SettingsCache().get() == DEFAULT_SETTINGS

    def test_serves_cached_value_within_ttl(self, app):
        clock = FakeClock()
        cache = SettingsCache(ttl=60, clock=clock)
        db.session.add(AdminSettings(logo_name="First"))
        db.session.commit()
        assert cache.get()["logo_name"] == "First"

        AdminSettings.query.one().logo_name = "Second"
        db.session.commit()

        clock.now = 59
        assert cache.get()["logo_name"] == "First"

        clock.now = 61
        assert cache.get()["logo_name"] == "Second"

    def test_invalidate_forces_reload(self, app):
        cache = SettingsCache(ttl=60, clock=FakeClock())
        cache.get()
        db.session.add(AdminSettings(logo_name="Fresh"))
        db.session.commit()

        assert cache.get()["logo_name"] is None
        cache.invalidate()
        assert cache.get()["logo_name"] == "Fresh"

    def test_returned_dict_is_a_copy(self, app):
        cache = SettingsCache(clock=FakeClock())
        cache.get()["logo_name"] = "mutated"
        assert cache.get()["logo_name"] is None

    def test_database_error_serves_last_value(self, app):
        cache = SettingsCache(ttl=60, clock=FakeClock())
        db.session.add(AdminSettings(logo_name="Cached"))
        db.session.commit()
        cache.get()
        cache.invalidate()

        broken = Mock()
        broken.query.first.side_effect = db_down()
        with patch("openstudents.helpers.settings_cache.AdminSettings", broken):
            assert cache.get()["logo_name"] == "Cached"

    def test_database_error_without_history_serves_defaults(self, app):
        broken = Mock()
        broken.query.first.side_effect = db_down()
        with patch("openstudents.helpers.settings_cache.AdminSettings", broken):
            assert SettingsCache().get() == DEFAULT_SETTINGS

    def test_init_app_reads_ttl(self, app):
        cache = app.extensions["settings_cache"]
        assert cache.ttl == app.config["SETTINGS_CACHE_TTL"]

    def test_paystack_secret_prefers_override(self, app):
        assert get_paystack_secret() == "sk_test_openstudents"

        db.session.add(AdminSettings(environment_variables={"PAYSTACK_SECRET_KEY": "sk_live_admin"}))
        db.session.commit()
        app.extensions["settings_cache"].invalidate()
        assert get_paystack_secret() == "sk_live_admin"

    def test_blank_override_is_ignored(self, app):
        db.session.add(AdminSettings(environment_variables={"PAYSTACK_SECRET_KEY": ""}))
        db.session.commit()
        assert get_paystack_secret() == "sk_test_openstudents"


class TestDatabaseRetry:

    def test_healthy_database(self, app):
        assert connect_db_with_retry() is True

    @patch("openstudents.utils.db.time.sleep")
    def test_retries_with_doubling_delay(self, mock_sleep, app):
        with patch.object(db.session, "execute", side_effect=db_down()):
            assert connect_db_with_retry(attempts=3, base_delay=0.5) is False
        assert mock_sleep.call_args_list == [call(0.5), call(1.0)]

    @patch("openstudents.utils.db.time.sleep")
    def test_recovers_on_later_attempt(self, mock_sleep, app):
        with patch.object(db.session, "execute", side_effect=[db_down(), None]):
            assert connect_db_with_retry(attempts=3, base_delay=0.1) is True
        assert mock_sleep.call_count == 1
