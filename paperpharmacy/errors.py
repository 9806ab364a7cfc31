"""Exceptions raised across the recommendation pipeline."""

DEFAULT_ERROR_MESSAGE = "AI 추천을 받아오는 데 실패했어요. 잠시 후 다시 시도해주세요."


class RecommendationError(Exception):
    """The whole batch failed. ``message`` is safe to show to the reader."""

    def __init__(self, message: str = DEFAULT_ERROR_MESSAGE):
        super().__init__(message)
        self.message = message


class ConfigurationError(Exception):
    """A required setting (usually an API key) is missing."""
