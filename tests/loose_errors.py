from typing import Annotated

from diagenum import Case, DiagnosticEnum, Span, colored, here, message


class LooseError(DiagnosticEnum):
    @message("painted but unlabelled")
    class Painted(Case):
        at: Annotated[Span, here, colored("blue")]
