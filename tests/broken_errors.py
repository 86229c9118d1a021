from typing import Annotated

from diagenum import Case, DiagnosticEnum, here


class BrokenError(DiagnosticEnum):
    class NotASpan(Case):
        count: Annotated[int, here]
