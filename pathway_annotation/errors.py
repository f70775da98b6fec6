class PathwayAnnotationError(Exception):
    """Base class for every error raised by pathway_annotation."""


class InvalidInputKind(PathwayAnnotationError, ValueError):
    pass


class UnsupportedPathwayKind(PathwayAnnotationError, ValueError):

    def __init__(self, kind):
        self.kind = kind
        super().__init__(f"Invalid pathway option: {kind!r}. "
                         f"Please provide one of the following options: 'KO', 'EC', 'MetaCyc'.")


# alias
UnknownPathwayKind = UnsupportedPathwayKind


class InvalidFileFormat(PathwayAnnotationError, ValueError):
    pass


class NoSignificantFeatures(PathwayAnnotationError):

    def __init__(self, threshold=0.05):
        self.threshold = threshold
        super().__init__(
            "No statistically significant biomarkers found. 'Statistically significant biomarkers' refer to "
            "those biomarkers that demonstrate a significant difference in expression between different groups, "
            f"as determined by a statistical test (p_adjust < {threshold} in this case).\n"
            "You might consider re-evaluating your experiment design or trying alternative statistical analysis "
            "methods. Consult with a biostatistician or a data scientist if you are unsure about the next steps."
        )


class RemoteTransientError(PathwayAnnotationError):
    """A single remote lookup failed; the caller may retry the same request."""


class RemoteUnavailable(PathwayAnnotationError):

    def __init__(self, start: int, end: int, attempts: int):
        self.start = start
        self.end = end
        self.attempts = attempts
        super().__init__(f"remote lookup for rows [{start}, {end}) failed after {attempts} attempts")


class EnrichmentCancelled(PathwayAnnotationError):

    def __init__(self, completed_chunks: int, total_chunks: int):
        self.completed_chunks = completed_chunks
        self.total_chunks = total_chunks
        super().__init__(f"enrichment cancelled after {completed_chunks}/{total_chunks} chunks")
