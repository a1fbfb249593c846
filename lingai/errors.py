"""Error taxonomy shared by the API layer, the stores and the managers."""


class LingaiError(Exception):
    """Base class for every failure the managers turn into a user message."""

    user_message = "Something went wrong"

    def describe(self) -> str:
        detail = str(self)
        return f"{self.user_message}: {detail}" if detail else self.user_message


class NetworkFailure(LingaiError):
    """Non-2xx response or transport error from a remote collaborator."""

    user_message = "Network request failed"


class ParseFailure(LingaiError):
    """Response was not valid JSON or lacked an expected field."""

    user_message = "Could not read the response"


class EmptyInputFailure(LingaiError):
    """Operation attempted without any vocabulary or input."""

    user_message = "No vocabulary words available"


class PersistenceFailure(LingaiError):
    """Serialising, deserialising or writing a stored collection failed."""

    user_message = "Could not save data"


class ResourceMissing(LingaiError):
    """A referenced audio file does not exist (yet) or cannot be decoded."""

    user_message = "Audio not available"
