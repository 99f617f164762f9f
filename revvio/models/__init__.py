from revvio.models.business_profile import BusinessProfile
from revvio.models.customer import Customer
from revvio.models.review_request import ReviewRequest, ReviewRequestStatus, ReviewRequestType
from revvio.models.user import User

__all__ = [
	"BusinessProfile",
	"Customer",
	"ReviewRequest",
	"ReviewRequestStatus",
	"ReviewRequestType",
	"User",
]
