"""Rules over PHP class code: injections, service locators, raw SQL."""
