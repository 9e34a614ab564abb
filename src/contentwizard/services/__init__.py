"""Services: session state machine, plan generation, template mapping and page creation."""
