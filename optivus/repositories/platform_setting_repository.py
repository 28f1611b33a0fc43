"""
PlatformSetting repository.

Reads and writes runtime platform switches.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from optivus.models.platform_setting import PlatformSetting


class PlatformSettingRepository:
    """Key/value access to platform settings."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize platform setting repository."""
        self.session = session

    async def get_value(self, key: str) -> str | None:
        """Get raw value or None if unset."""
        setting = await self.session.get(PlatformSetting, key)
        return setting.value if setting else None

    async def get_flag(self, key: str, default: bool = False) -> bool:
        """
        Get boolean switch.

        Args:
            key: Setting key
            default: Value when the key is unset

        Returns:
            Switch state
        """
        value = await self.get_value(key)
        if value is None:
            return default
        return value.lower() in ("1", "true", "yes", "on")

    async def set_flag(self, key: str, enabled: bool) -> None:
        """Create or update boolean switch."""
        setting = await self.session.get(PlatformSetting, key)
        value = "true" if enabled else "false"
        if setting is None:
            self.session.add(PlatformSetting(key=key, value=value))
        else:
            setting.value = value
        await self.session.flush()
