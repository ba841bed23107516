# Models package - normalized database models
from authserver.models.user import User, Role, UserRoleLink, UserStatus, RoleName
from authserver.models.organization import Organization, SubscriptionPlan
from authserver.models.quota import NormalUserQuota
from authserver.models.upgrade_request import UpgradeRequest, UpgradeRequestStatus
from authserver.models.token import RefreshToken
