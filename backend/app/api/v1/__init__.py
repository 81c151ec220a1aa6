"""
API v1 路由
"""
from fastapi import APIRouter
from app.api.v1 import order

api_router = APIRouter()

# 注册子路由
api_router.include_router(order.router, prefix="/order", tags=["下单助手"])
