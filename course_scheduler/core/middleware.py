"""
Tenant scoping: every scheduling call runs against an explicit TenantScope.
"""

from fastapi import Depends, HTTPException

from course_scheduler.core.database import get_catalog
from course_scheduler.core.security import get_current_user
from course_scheduler.schemas.records import TenantScope
from course_scheduler.stores.base import CatalogAdapter


def get_tenant_scope(user: dict, catalog: CatalogAdapter) -> TenantScope:
    """
    Build the tenant scope from the authenticated user.
    A campus user is scoped to the campus's main school; the campus id is kept
    so campus-specific rows can be filtered.
    """
    school_id = user.get("school_id")
    if not school_id:
        raise HTTPException(status_code=400, detail="school_id required. User is not assigned to a school.")
    main_school_id = catalog.resolve_school_id(school_id)
    campus_id = user.get("campus_id")
    if not campus_id and main_school_id != school_id:
        campus_id = school_id
    return TenantScope(school_id=main_school_id, campus_id=campus_id)


async def tenant_scope(
    user: dict = Depends(get_current_user),
    catalog: CatalogAdapter = Depends(get_catalog),
) -> TenantScope:
    return get_tenant_scope(user, catalog)
