class LocatorException(Exception):
    pass


class QueryTooShortException(LocatorException):
    def __init__(self, query: str, query_kind: str = "Nucleotide", *args):
        self.query = query
        super().__init__(f"{query_kind} sequence length too short", *args)


class InvalidAlphabetException(LocatorException):
    def __init__(self, query: str, invalid_characters: str, query_kind: str = "nucleotide", *args):
        self.query = query
        self.invalid_characters = invalid_characters
        super().__init__(f"Invalid {query_kind} sequence: {query}", *args)


class ReferenceTooShortException(LocatorException):
    def __init__(self, query_length: int, reference_length: int, *args):
        self.query_length = query_length
        self.reference_length = reference_length
        super().__init__(
            f"Reference sequence ({reference_length}) is shorter than the query ({query_length})", *args)


class EmptyQuerySetException(LocatorException):
    def __init__(self, *args):
        super().__init__("Query sequence cannot be empty", *args)
