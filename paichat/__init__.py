"""PAI Chat - terminal chat client and Gemini relay."""

__version__ = "0.1.0"
