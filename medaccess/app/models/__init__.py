from medaccess.app.models.user import User, UserStatus, UserType
from medaccess.app.models.profile import Admin, Profile
from medaccess.app.models.session import RefreshToken, SignupToken
from medaccess.app.models.encryption_profile import EncryptionProfile

__all__ = [
    "User",
    "UserStatus",
    "UserType",
    "Admin",
    "Profile",
    "RefreshToken",
    "SignupToken",
    "EncryptionProfile",
]
