class PagechatError(Exception):
    """Base class for errors raised by the pipeline."""


class InvalidRequestError(PagechatError):
    """The caller sent something we cannot work with (maps to HTTP 400)."""


class ProviderError(PagechatError):
    """The rerank or chat provider failed after retries."""


class MissingCredentialsError(ProviderError):
    def __init__(self, variable: str = "COHERE_API_KEY"):
        super().__init__(f"{variable} is missing from environment variables.")
        self.variable = variable
