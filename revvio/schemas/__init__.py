from revvio.schemas.api import ApiError, BusinessProfileEnvelope
from revvio.schemas.business import BusinessInfoForm, BusinessProfileRead, OnboardingForm, ReviewLinksForm
from revvio.schemas.user import Token, TokenData, UserCreate, UserLogin, UserRead

__all__ = [
	"ApiError",
	"BusinessProfileEnvelope",
	"BusinessInfoForm",
	"BusinessProfileRead",
	"OnboardingForm",
	"ReviewLinksForm",
	"Token",
	"TokenData",
	"UserCreate",
	"UserLogin",
	"UserRead",
]
