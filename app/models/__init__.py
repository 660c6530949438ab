# Importing this package registers every table on Base.metadata.
from app.models.case import Case  # noqa: F401
from app.models.quote import Quote  # noqa: F401
from app.models.payment import Payment  # noqa: F401
from app.models.case_history import CaseHistory  # noqa: F401
