"""
Business Logic Services

Includes:
- CredentialStore: Account -> indexing credentials and quota
- DelegateDirectory: Sub-user records
- EffectiveAccountResolver: Principal -> effective account context
- permission_service: Permission gate
- QuotaService: Live document quota checks
- IngestionPipeline: Storage upload, indexing, metadata attachment
- BatchOrchestrator: Sequential multi-file ingestion
- DocumentService: Listing and deletion

Import services directly from their modules.
"""
