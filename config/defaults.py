from config.schema import (
    BlockScheduleConfig,
    BlockTime,
    EngineConfig,
    LoggingConfig,
    PolicyConfig,
    StorageConfig,
)


def default_block_schedule() -> BlockScheduleConfig:
    """Standard-Blockraster.

    Blockraster:
    1. Block  08:00 - 09:30
    2. Block  09:30 - 11:00
    3. Block  11:00 - 12:30
       ── Mittagspause (30 min) ──
    4. Block  13:00 - 14:30
    5. Block  14:30 - 16:00
    6. Block  16:00 - 17:30
    """
    return BlockScheduleConfig(
        blocks=[
            BlockTime(block=1, start_time="08:00", end_time="09:30"),
            BlockTime(block=2, start_time="09:30", end_time="11:00"),
            BlockTime(block=3, start_time="11:00", end_time="12:30"),
            BlockTime(block=4, start_time="13:00", end_time="14:30"),
            BlockTime(block=5, start_time="14:30", end_time="16:00"),
            BlockTime(block=6, start_time="16:00", end_time="17:30"),
        ]
    )


def default_engine_config() -> EngineConfig:
    """Vollständige Default-Konfiguration."""
    return EngineConfig(
        center_name="Muster-Schule",
        block_schedule=default_block_schedule(),
        storage=StorageConfig(),
        policy=PolicyConfig(reject_past_dates=True),
        logging=LoggingConfig(level="WARNING"),
    )


# Ausstattungs-Vorschläge für Demo-Daten
EQUIPMENT_CATALOG = [
    "Beamer", "Whiteboard", "Smartboard", "Lautsprecher",
    "PC-Arbeitsplätze", "Dokumentenkamera", "Klavier", "Laborabzug",
]
