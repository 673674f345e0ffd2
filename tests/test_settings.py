import pytest
from pydantic import ValidationError as SchemaError

from parish.models import SystemSetting
from parish.services.settings import SettingsRepository, SystemConfig, max_users_per_group


def test_defaults_when_nothing_saved(db):
    stored = SettingsRepository(db).get_config()
    assert stored.config == SystemConfig()
    assert stored.last_saved is None
    assert max_users_per_group(db) == 50


def test_save_then_reload(db, make_user):
    admin = make_user()
    repo = SettingsRepository(db)
    saved = repo.save_config(SystemConfig(app_name="FJKM Ambalakininy", max_users_per_group=12), updated_by=admin.id)

    assert saved.config.app_name == "FJKM Ambalakininy"
    assert saved.last_saved is not None
    assert repo.get_value("max_users_per_group") == 12
    assert repo.get_value("unknown", default="x") == "x"
    row = db.query(SystemSetting).filter(SystemSetting.key == "app_name").one()
    assert row.updated_by == admin.id


def test_save_overwrites_existing_rows(db):
    repo = SettingsRepository(db)
    repo.save_config(SystemConfig(maintenance_mode=True))
    repo.save_config(SystemConfig(maintenance_mode=False))
    assert db.query(SystemSetting).filter(SystemSetting.key == "maintenance_mode").count() == 1
    assert repo.get_config().config.maintenance_mode is False


def test_group_capacity_must_be_positive():
    with pytest.raises(SchemaError):
        SystemConfig(max_users_per_group=0)
