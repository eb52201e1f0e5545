"""
Services Package
Business logic services
"""

from ciderhouse.services.batch_service import BatchService
from ciderhouse.services.inventory_service import InventoryService
from ciderhouse.services.packaging_service import PackagingService
from ciderhouse.services.purchase_service import PurchaseService
from ciderhouse.services.reconciliation_service import ReconciliationService
from ciderhouse.services.reconciliation_view import AutoVerifier, ReconciliationView
from ciderhouse.services.transfer_service import TransferService, TransferWorkflow
from ciderhouse.services.verification_service import VerificationService
from ciderhouse.services.vessel_service import VesselService

__all__ = [
    "BatchService",
    "InventoryService",
    "PackagingService",
    "PurchaseService",
    "ReconciliationService",
    "ReconciliationView",
    "AutoVerifier",
    "TransferService",
    "TransferWorkflow",
    "VerificationService",
    "VesselService",
]
