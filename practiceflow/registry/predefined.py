"""Stock templates for common practice transitions."""

from __future__ import annotations

from typing import Any, List

from ..contracts import (
    ConditionKind,
    DataEntryStep,
    DocumentScanStep,
    ManualTaskStep,
    ResourceType,
    StepResource,
    SystemConfigStep,
    TemplateConfig,
    TrainingStep,
    ValidationCriterion,
    ValidationStep,
    WorkflowType,
)

TRAINING_URL = "https://training.gcmckaj.com"


def _gt(field: str, value: Any) -> ValidationCriterion:
    return ValidationCriterion(field=field, condition=ConditionKind.GREATER_THAN, value=value)


def _eq(field: str, value: Any) -> ValidationCriterion:
    return ValidationCriterion(field=field, condition=ConditionKind.EQUALS, value=value)


def _res(kind: ResourceType, title: str, content: str | None = None, url: str | None = None) -> StepResource:
    return StepResource(type=kind, title=title, content=content, url=url)


def digital_transition_template() -> TemplateConfig:
    """Paper files to digital records for a traditional accounting practice."""

    steps = [
        ManualTaskStep(
            id="inventory_assessment",
            title="Physical Document Inventory Assessment",
            description="Catalog and assess all physical documents for digitization",
            estimated_duration=480,
            assigned_role="document_specialist",
            instructions=(
                "Complete a comprehensive inventory of all client physical documents, "
                "categorizing by type, condition, and priority for digitization."
            ),
            checklist_items=[
                "Count total documents by category",
                "Assess document condition (excellent, good, fair, poor)",
                "Identify special handling requirements",
                "Create location mapping (cabinet, drawer, folder)",
                "Flag documents requiring immediate attention",
            ],
            validation_criteria=[_gt("total_documents", 0), _gt("categories_identified", 3)],
            resources=[
                _res(ResourceType.TEMPLATE, "Document Inventory Spreadsheet",
                     "Excel template for cataloging physical documents"),
                _res(ResourceType.VIDEO, "Document Assessment Training",
                     url=f"{TRAINING_URL}/document-assessment"),
            ],
        ),
        SystemConfigStep(
            id="digital_structure_setup",
            title="Digital Filing Structure Setup",
            description="Create organized digital folder structure mirroring familiar file cabinet organization",
            estimated_duration=240,
            prerequisite_steps=["inventory_assessment"],
            assigned_role="system_admin",
            instructions=(
                "Set up digital folder hierarchy that follows traditional filing cabinet "
                "structure to ensure familiar navigation for staff."
            ),
            checklist_items=[
                "Create client folder structure",
                "Set up document type categories",
                "Configure access permissions",
                "Test folder navigation",
                "Document naming conventions established",
            ],
            validation_criteria=[_eq("folder_structure_created", True)],
            resources=[
                _res(ResourceType.DOCUMENT, "Digital Filing Best Practices",
                     "Guidelines for organizing digital documents"),
            ],
            system_component="filing_cabinet",
        ),
        SystemConfigStep(
            id="scanning_workflow_setup",
            title="Document Scanning Workflow Configuration",
            description="Configure OCR settings and scanning procedures optimized for Guyanese documents",
            estimated_duration=120,
            prerequisite_steps=["digital_structure_setup"],
            assigned_role="technical_specialist",
            instructions=(
                "Configure scanning equipment and OCR software for optimal recognition of "
                "Guyanese government forms, business documents, and local content."
            ),
            checklist_items=[
                "Scanner resolution set to 600 DPI minimum",
                "OCR language settings configured for English",
                "Guyanese document templates loaded",
                "Quality control thresholds set",
                "Batch processing workflows activated",
            ],
            validation_criteria=[_gt("ocr_accuracy_threshold", 85)],
            resources=[
                _res(ResourceType.DOCUMENT, "Guyanese OCR Configuration Guide",
                     "Specific settings for optimal OCR accuracy on local documents"),
            ],
            system_component="ocr",
        ),
        TrainingStep(
            id="staff_training_basic",
            title="Basic Staff Training Session",
            description="Train staff on new digital workflows while maintaining familiarity with traditional processes",
            estimated_duration=360,
            prerequisite_steps=["scanning_workflow_setup"],
            assigned_role="training_coordinator",
            instructions=(
                "Conduct hands-on training that bridges traditional filing methods with "
                "digital workflows, ensuring staff comfort with the transition."
            ),
            checklist_items=[
                "Digital navigation training completed",
                "Document upload procedures practiced",
                "Search and retrieval methods demonstrated",
                "Quality control processes learned",
                "Backup procedures understood",
            ],
            validation_criteria=[_gt("staff_competency_score", 80)],
            resources=[
                _res(ResourceType.VIDEO, "Digital Transition Training Series",
                     url=f"{TRAINING_URL}/basic-digital-workflow"),
                _res(ResourceType.TEMPLATE, "Training Progress Tracker",
                     "Template for tracking individual staff progress"),
            ],
            audience=["staff"],
            passing_score=80,
        ),
        DocumentScanStep(
            id="pilot_scanning_batch",
            title="Pilot Document Scanning Batch",
            description="Process a small batch of documents to test and refine the digitization workflow",
            estimated_duration=480,
            prerequisite_steps=["staff_training_basic"],
            assigned_role="document_specialist",
            instructions=(
                "Select 50-100 representative documents for pilot scanning to identify any "
                "workflow issues and train staff on real documents."
            ),
            checklist_items=[
                "Pilot batch documents selected",
                "Scanning completed with quality checks",
                "OCR accuracy verified",
                "Digital filing completed",
                "Process improvements identified",
            ],
            validation_criteria=[
                _gt("pilot_documents_processed", 50),
                _gt("average_quality_score", 90),
            ],
            resources=[
                _res(ResourceType.TEMPLATE, "Pilot Batch Evaluation Form",
                     "Form for recording pilot batch results and improvements"),
            ],
            target_document_count=100,
            minimum_ocr_accuracy=90,
        ),
        SystemConfigStep(
            id="client_portal_setup",
            title="Client Portal Configuration",
            description="Set up client access to their digitized documents with familiar navigation",
            estimated_duration=180,
            prerequisite_steps=["pilot_scanning_batch"],
            assigned_role="system_admin",
            instructions=(
                "Configure client portal with intuitive navigation that mimics traditional "
                "document organization, ensuring clients can easily find their documents."
            ),
            checklist_items=[
                "Client accounts created",
                "Document access permissions set",
                "Navigation customized for client familiarity",
                "Mobile access configured",
                "Support documentation provided",
            ],
            validation_criteria=[_eq("portal_accessible", True)],
            resources=[
                _res(ResourceType.DOCUMENT, "Client Portal Configuration Guide",
                     "Step-by-step portal setup instructions"),
            ],
            system_component="client_portal",
        ),
        DataEntryStep(
            id="legacy_data_migration",
            title="Legacy System Data Migration",
            description="Migrate existing client data from spreadsheets, QuickBooks, or other legacy systems",
            estimated_duration=720,
            prerequisite_steps=["client_portal_setup"],
            assigned_role="data_specialist",
            instructions=(
                "Import and validate existing client data from legacy systems, ensuring "
                "data integrity and completeness."
            ),
            checklist_items=[
                "Legacy data exported and cleaned",
                "Data mapping validated",
                "Import process executed",
                "Data quality verified",
                "Duplicate records resolved",
            ],
            validation_criteria=[_gt("data_accuracy_rate", 95)],
            resources=[
                _res(ResourceType.TEMPLATE, "Legacy Data Migration Checklist",
                     "Comprehensive checklist for data migration process"),
            ],
            source_system="legacy",
        ),
        DocumentScanStep(
            id="bulk_document_processing",
            title="Bulk Document Digitization",
            description="Process the majority of physical documents using established workflows",
            estimated_duration=2400,
            prerequisite_steps=["legacy_data_migration"],
            assigned_role="document_team",
            instructions=(
                "Execute full-scale document digitization using proven workflows from pilot "
                "phase, maintaining quality and efficiency standards."
            ),
            checklist_items=[
                "Batch processing schedules created",
                "Quality control checkpoints implemented",
                "Progress tracking systems active",
                "Client notification procedures followed",
                "Exception handling processes tested",
            ],
            validation_criteria=[_gt("processing_completion_rate", 95)],
            resources=[
                _res(ResourceType.TEMPLATE, "Bulk Processing Tracker",
                     "Spreadsheet for tracking bulk digitization progress"),
            ],
        ),
        ValidationStep(
            id="quality_assurance_review",
            title="Comprehensive Quality Assurance",
            description="Systematic review of all digitized documents and data integrity",
            estimated_duration=480,
            prerequisite_steps=["bulk_document_processing"],
            assigned_role="quality_specialist",
            instructions=(
                "Conduct thorough quality review of digitized documents, data accuracy, and "
                "system functionality before client rollout."
            ),
            checklist_items=[
                "Random document sampling completed",
                "OCR accuracy verification performed",
                "Data integrity checks passed",
                "System performance validated",
                "Client access testing successful",
            ],
            validation_criteria=[_gt("quality_score", 95)],
            resources=[
                _res(ResourceType.TEMPLATE, "QA Review Checklist",
                     "Comprehensive quality assurance checklist"),
            ],
        ),
        TrainingStep(
            id="client_transition_training",
            title="Client Transition Training",
            description="Train clients on accessing and using their new digital document portal",
            estimated_duration=240,
            prerequisite_steps=["quality_assurance_review"],
            assigned_role="client_success_specialist",
            instructions=(
                "Provide personalized training to clients on their new digital portal, "
                "ensuring comfort and competence with the new system."
            ),
            checklist_items=[
                "Individual client training sessions scheduled",
                "Portal navigation demonstrated",
                "Document search training provided",
                "Mobile access configured",
                "Support resources shared",
            ],
            validation_criteria=[_gt("client_satisfaction_score", 80)],
            resources=[
                _res(ResourceType.VIDEO, "Client Portal User Guide",
                     url=f"{TRAINING_URL}/client-portal-guide"),
            ],
            audience=["clients"],
        ),
        SystemConfigStep(
            id="go_live_execution",
            title="Go-Live and System Activation",
            description="Activate the new digital system and transition from legacy processes",
            estimated_duration=180,
            prerequisite_steps=["client_transition_training"],
            assigned_role="project_manager",
            instructions=(
                "Execute the transition to full digital operations, ensuring all systems are "
                "operational and all stakeholders are ready."
            ),
            checklist_items=[
                "System cutover completed",
                "All stakeholders notified",
                "Support procedures activated",
                "Monitoring systems enabled",
                "Rollback procedures ready",
            ],
            validation_criteria=[_eq("system_operational", True)],
            resources=[
                _res(ResourceType.TEMPLATE, "Go-Live Checklist",
                     "Final checklist for system activation"),
            ],
        ),
        ManualTaskStep(
            id="post_transition_support",
            title="Post-Transition Support Period",
            description="Provide intensive support during the first weeks after go-live",
            estimated_duration=720,
            prerequisite_steps=["go_live_execution"],
            assigned_role="support_team",
            instructions=(
                "Provide enhanced support during the critical first weeks after transition, "
                "ensuring rapid resolution of any issues."
            ),
            checklist_items=[
                "Daily check-ins scheduled",
                "Issue tracking system active",
                "Performance monitoring in place",
                "User feedback collection ongoing",
                "Process refinements implemented",
            ],
            validation_criteria=[_gt("system_stability", 95)],
            resources=[
                _res(ResourceType.TEMPLATE, "Post-Go-Live Support Log",
                     "Template for tracking post-transition support activities"),
            ],
        ),
    ]

    return TemplateConfig(
        name="Traditional Accounting Practice Digital Transition",
        description=(
            "Complete workflow for transitioning from physical file management to digital platform"
        ),
        workflow_type=WorkflowType.DOCUMENT_MIGRATION,
        client_types=["individual", "small_business", "company"],
        steps=steps,
        estimated_duration=45,
        required_skills=["document_scanning", "data_entry", "client_communication"],
        success_criteria=[
            "All physical documents digitized",
            "Client portal access configured",
            "Staff trained on new system",
            "Legacy system data migrated",
            "Quality assurance completed",
        ],
        checklist_items=[
            "Physical document inventory completed",
            "Digital filing structure created",
            "OCR processing quality verified",
            "Client approval received",
            "Backup procedures tested",
        ],
        resources=[
            "Document scanning guidelines",
            "OCR best practices",
            "Client communication templates",
            "Quality control checklists",
        ],
    )


def individual_onboarding_template() -> TemplateConfig:
    """Streamlined onboarding of an individual client to the portal."""

    return TemplateConfig(
        name="Individual Client Digital Onboarding",
        description="Streamlined workflow for onboarding individual clients to digital platform",
        workflow_type=WorkflowType.CLIENT_ONBOARDING,
        client_types=["individual"],
        estimated_duration=7,
        required_skills=["client_communication", "system_navigation"],
        success_criteria=[
            "Client portal access configured",
            "Documents uploaded and organized",
            "Client trained on basic features",
        ],
        checklist_items=[
            "Account created",
            "Initial documents uploaded",
            "Navigation training completed",
        ],
        resources=["Quick start guide", "Video tutorials"],
        steps=[
            SystemConfigStep(
                id="account_setup",
                title="Client Account Setup",
                description="Create client account and configure basic settings",
                estimated_duration=30,
                assigned_role="admin",
                instructions="Set up new client account with appropriate permissions and settings.",
                checklist_items=["Account created", "Permissions configured", "Welcome email sent"],
                validation_criteria=[_eq("account_active", True)],
                resources=[
                    _res(ResourceType.TEMPLATE, "Account Setup Checklist",
                         "Step-by-step account creation guide"),
                ],
                system_component="client_portal",
            ),
        ],
    )


def predefined_templates() -> List[TemplateConfig]:
    return [digital_transition_template(), individual_onboarding_template()]
