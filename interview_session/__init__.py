"""Interview session lifecycle: models, prompts and the conversation state machine."""
