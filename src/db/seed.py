"""Seed asset profiles from config/config.yaml. Idempotent."""
import asyncio
from typing import Any

from sqlalchemy import select

from src.config import app_config
from src.db.base import async_session_factory, create_tables, engine
from src.db.models import Asset
from src.portfolio.models import AssetClass


def profile_fields(asset_cfg: dict[str, Any]) -> dict[str, Any]:
    """Map one ``assets:`` entry of the YAML config onto Asset columns."""
    asset_class = str(asset_cfg.get("asset_class", "UNKNOWN")).upper()
    if asset_class not in AssetClass.__members__:
        asset_class = AssetClass.UNKNOWN.value
    return {
        "name": asset_cfg.get("name"),
        "currency": str(asset_cfg.get("currency", "USD")).upper(),
        "asset_class": asset_class,
        "sectors": [
            {"name": s["name"], "weight": float(s["weight"])}
            for s in asset_cfg.get("sectors", [])
        ] or None,
        "countries": [
            {"code": str(c["code"]).upper(), "weight": float(c["weight"])}
            for c in asset_cfg.get("countries", [])
        ] or None,
    }


async def seed() -> None:
    await create_tables()
    async with async_session_factory() as session:
        for asset_cfg in app_config.get("assets", []):
            fields = profile_fields(asset_cfg)
            result = await session.execute(
                select(Asset).where(Asset.ticker == asset_cfg["ticker"])
            )
            asset = result.scalar_one_or_none()
            if not asset:
                session.add(Asset(ticker=asset_cfg["ticker"], **fields))
                print(f"Created asset: {asset_cfg['ticker']}")
            else:
                for column, value in fields.items():
                    setattr(asset, column, value)

        await session.commit()
        print("Seed complete.")
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
