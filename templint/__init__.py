"""templint: lint and autocorrect the Ruby embedded in ERB templates."""

__version__ = "0.3.0"
