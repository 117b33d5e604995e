"""Storage key layout."""

DEFAULT_PREFIX = "mastra:"


class KeyLayout:
    """Builds prefixed keys for threads, messages and working memory."""

    def __init__(self, prefix: str = DEFAULT_PREFIX):
        self.prefix = prefix

    def message(self, message_id: str) -> str:
        return f"{self.prefix}message:{message_id}"

    def thread(self, thread_id: str) -> str:
        return f"{self.prefix}thread:{thread_id}"

    def thread_messages(self, thread_id: str) -> str:
        return f"{self.prefix}thread:{thread_id}:messages"

    def working_memory(self, thread_id: str) -> str:
        return f"{self.prefix}thread:{thread_id}:working_memory"

    def threads(self) -> str:
        return f"{self.prefix}threads"
