"""
Startup seeding: roles, default subscription plans and the bootstrap SuperAdmin.
Each step is idempotent.
"""
import logging

from sqlmodel.ext.asyncio.session import AsyncSession

from authserver.config import settings
from authserver.models.organization import SubscriptionPlan
from authserver.models.user import RoleName, UserStatus
from authserver.repositories.organization_repo import SubscriptionPlanRepository
from authserver.repositories.user_repo import RoleRepository
from authserver.services.credential_store import SQLCredentialStore

logger = logging.getLogger(__name__)

DEFAULT_PLANS = [
    {
        "name": "starter",
        "display_name": "Starter",
        "max_users": 5,
        "max_cv_uploads": 50,
        "display_order": 1,
        "features": [
            "Up to 5 users",
            "50 CV analyses per month",
            "Email support",
            "Basic reporting",
            "Organization dashboard",
        ],
    },
    {
        "name": "professional",
        "display_name": "Professional",
        "max_users": 20,
        "max_cv_uploads": 200,
        "display_order": 2,
        "is_popular": True,
        "features": [
            "Up to 20 users",
            "200 CV analyses per month",
            "Priority support",
            "Advanced analytics",
            "Custom branding",
            "API access",
        ],
    },
    {
        "name": "enterprise",
        "display_name": "Enterprise",
        "max_users": 100,
        "max_cv_uploads": 1000,
        "display_order": 3,
        "features": [
            "Up to 100 users",
            "1000 CV analyses per month",
            "Dedicated support",
            "Advanced analytics",
            "Custom branding",
            "API access",
            "SSO integration",
            "Custom integrations",
        ],
    },
]


async def seed_roles(session: AsyncSession) -> None:
    role_repo = RoleRepository(session)
    for role in RoleName:
        await role_repo.get_or_create(role.value)
    await session.commit()


async def seed_plans(session: AsyncSession) -> int:
    """Insert the default plans when the plan table is empty."""
    plan_repo = SubscriptionPlanRepository(session)
    if await plan_repo.count() > 0:
        logger.info("Subscription plans already exist. Skipping seed.")
        return 0

    for data in DEFAULT_PLANS:
        data = dict(data)
        features = data.pop("features")
        plan = SubscriptionPlan(**data)
        plan.set_features(features)
        session.add(plan)
    await session.commit()
    logger.info(f"Seeded {len(DEFAULT_PLANS)} subscription plans")
    return len(DEFAULT_PLANS)


async def seed_super_admin(session: AsyncSession) -> None:
    if not settings.SUPERADMIN_EMAIL or not settings.SUPERADMIN_PASSWORD:
        return

    credentials = SQLCredentialStore(session)
    if await credentials.find_by_email(settings.SUPERADMIN_EMAIL):
        return

    user = await credentials.create_user(
        email=settings.SUPERADMIN_EMAIL,
        password=settings.SUPERADMIN_PASSWORD,
        first_name="Super",
        last_name="Admin",
        status=UserStatus.ACTIVE.value
    )
    await credentials.assign_role(user, RoleName.SUPER_ADMIN.value)
    await session.commit()
    logger.info(f"Created bootstrap SuperAdmin {user.email}")


async def seed_all(session: AsyncSession) -> None:
    await seed_roles(session)
    await seed_plans(session)
    await seed_super_admin(session)
