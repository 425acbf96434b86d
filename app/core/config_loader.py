import json
import os
import logging
from typing import Dict, Any, Optional

from app.core.config import settings

logger = logging.getLogger("app")

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

def load_shop_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Loads the shop policy (slot size, opening hours) from JSON file.
    Raises FileNotFoundError if config is missing.
    Returns: Dict containing config.
    """
    config_path = path or settings.SHOP_CONFIG_PATH
    if not os.path.exists(config_path):
        logger.critical(f"❌ Shop config '{config_path}' not found! The booking service cannot start.")
        raise FileNotFoundError(f"Configuration file not found at {config_path}")

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = json.load(f)
    except json.JSONDecodeError as e:
        logger.critical(f"❌ Invalid JSON in shop config: {e}")
        raise ValueError(f"Invalid JSON in config file: {e}")

    missing = [day for day in WEEKDAYS if day not in config.get("business_hours", {})]
    if missing:
        # Days left out of the file are treated as closed
        logger.warning(f"⚠️ Shop config has no hours for {', '.join(missing)}; treating them as closed.")

    logger.info(f"✅ Shop config loaded for: {config.get('shop_name', 'Unknown')}")
    return config

def get_business_hours(config: Dict[str, Any], day_name: str) -> Optional[Dict[str, str]]:
    """
    Helper to get business hours for a specific day (monday, tuesday...).
    Returns: Dict {'start': 'HH:MM', 'end': 'HH:MM'} or None if closed.
    """
    hours = config.get("business_hours", {})
    return hours.get(day_name.lower())

def get_slot_minutes(config: Dict[str, Any]) -> int:
    return int(config.get("slot_minutes", 30))
