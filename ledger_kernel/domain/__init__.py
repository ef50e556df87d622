"""Pure domain core: value objects, money rules, state machine, templates."""
