from abc import ABC, abstractmethod

from hookreview.models.code_review import AIReviewRequest, AIReviewResult


class ReviewClient(ABC):
    @abstractmethod
    def review(self, request: AIReviewRequest) -> AIReviewResult:
        """Review one file diff against one rule's backend.

        Transport failures raise ``TransportError`` once the retry policy is
        exhausted. An answer that cannot be understood is reported as an
        unsuccessful result with no comments.
        """
        pass
