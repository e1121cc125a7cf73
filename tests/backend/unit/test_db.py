"""
Unit tests for core.db module.
"""
import pytest
from activation_hub.core import db as db_module
from activation_hub.models.activation_code import ActivationCode, IssuedCode


pytestmark = pytest.mark.asyncio


async def test_config_registers_models_with_utc():
    models = db_module.TORTOISE_ORM["apps"]["models"]["models"]
    assert "activation_hub.models.activation_code" in models
    assert "aerich.models" in models
    assert db_module.TORTOISE_ORM["use_tz"] is True


async def test_init_db_can_generate_schema():
    await db_module.init_db(generate_schemas=True)
    try:
        assert await ActivationCode.all().count() == 0
        assert await IssuedCode.all().count() == 0
    finally:
        await db_module.close_db()
