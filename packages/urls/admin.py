"""
Admin package URLs (mounted under /api/admin/)
"""
from django.urls import path
from ..views.admin import (
    packages_view,
    package_detail_view,
    package_top_up_view,
    package_gift_view,
    package_ledger_view,
    package_txns_view,
    package_txn_detail_view,
)

app_name = 'packages-admin'

urlpatterns = [
    path('packages', packages_view, name='packages'),
    path('packages/<int:pk>', package_detail_view, name='package-detail'),
    path('packages/<int:pk>/top-up', package_top_up_view, name='package-top-up'),
    path('packages/<int:pk>/ledger', package_ledger_view, name='package-ledger'),
    path('packages/<int:pk>/ledger/gift', package_gift_view, name='package-gift'),
    path('packages/<int:pk>/ledger/txns', package_txns_view, name='package-txns'),
    path('packages/<int:pk>/ledger/txns/<int:txn_id>', package_txn_detail_view, name='package-txn-detail'),
]
