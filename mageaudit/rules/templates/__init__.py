"""Rules over phtml templates."""
