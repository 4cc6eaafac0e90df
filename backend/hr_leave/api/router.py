from fastapi import APIRouter

from hr_leave.api.balances import balances_router
from hr_leave.api.policies import policies_router
from hr_leave.api.requests import requests_router

API_PREFIX = "/hr/leaves"

api_router = APIRouter(prefix=API_PREFIX)
api_router.include_router(policies_router)
api_router.include_router(balances_router)
api_router.include_router(requests_router)
