class WhereToError(Exception):
    """Base exception for the decision engine.

    Every subclass is an expected, caller-recoverable condition. ``status_code``
    is the HTTP status the API layer maps it to and ``code`` is the stable
    machine-readable name returned to clients.
    """

    status_code: int = 400
    code: str = "whereto_error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__class__.__doc__.strip().splitlines()[0])


# -- Not-found class ---------------------------------------------------------


class NotFoundError(WhereToError):
    """Requested record does not exist."""

    status_code = 404
    code = "not_found"


class CollectionNotFound(NotFoundError):
    """Collection not found."""

    code = "collection_not_found"


class DecisionNotFound(NotFoundError):
    """Decision not found."""

    code = "decision_not_found"


class GroupNotFound(NotFoundError):
    """Group not found."""

    code = "group_not_found"


class RestaurantNotFound(NotFoundError):
    """Restaurant not found."""

    code = "restaurant_not_found"


# -- Precondition class ------------------------------------------------------


class PreconditionError(WhereToError):
    """Valid request made while the decision is in the wrong state."""

    status_code = 409
    code = "precondition_failed"


class EmptyCollection(PreconditionError):
    """No restaurants in collection."""

    code = "empty_collection"


class NotActive(PreconditionError):
    """Decision is no longer active."""

    code = "not_active"


class NoVotesSubmitted(PreconditionError):
    """No votes submitted."""

    code = "no_votes_submitted"


class NotATieredDecision(PreconditionError):
    """This is not a tiered decision."""

    code = "not_a_tiered_decision"


class NotAGroupDecision(PreconditionError):
    """This is not a group decision."""

    code = "not_a_group_decision"


class SelectionInProgress(PreconditionError):
    """A selection for this collection is already in progress."""

    code = "selection_in_progress"


class TallyConflict(PreconditionError):
    """Ballots kept changing while the decision was being tallied; try again."""

    code = "tally_conflict"


# -- Validation class --------------------------------------------------------


class InvalidDecision(WhereToError):
    """Decision parameters are invalid."""

    status_code = 422
    code = "invalid_decision"


# -- Authorization class -----------------------------------------------------


class AuthorizationError(WhereToError):
    """Acting user is not allowed to perform this operation."""

    status_code = 403
    code = "forbidden"


class NotAParticipant(AuthorizationError):
    """User is not a participant in this decision."""

    code = "not_a_participant"


class NotAdmin(AuthorizationError):
    """Only group admins can close decisions."""

    code = "not_admin"
