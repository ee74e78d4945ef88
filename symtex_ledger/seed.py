# symtex_ledger/seed.py
"""
Sample activity for demos and the `seed` CLI command.

Twenty events across every actor type and most categories, numbered from
1001 on an empty ledger. Timestamps are relative to `now` (hours ago), so the
newest event has the lowest sequence, as on the dashboard's demo data.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from symtex_ledger.core.types import LedgerEntry, SixWPayload, utc_now

SEED_FIRST_SEQUENCE = 1001

_SUPPORT = {"type": "cognate", "id": "cog-support", "name": "Support Cognate",
            "metadata": {"tier": 2, "autonomy_level": "supervised"}}
_JSMITH = {"type": "user", "id": "user-jsmith", "name": "John Smith", "metadata": {"role": "Admin"}}

_SUPPORT_SPACE = {"space_id": "space-support", "space_name": "Customer Support",
                  "project_id": "proj-tickets", "project_name": "Ticket Management"}
_MARKETING_AUTOMATION = {"space_id": "space-marketing", "space_name": "Marketing",
                         "project_id": "proj-automation", "project_name": "Marketing Automation"}

# (hours ago, payload, annotation)
_SAMPLES: List[Tuple[float, Dict[str, Any], Dict[str, Any]]] = [
    (0.5, {
        "who": _SUPPORT,
        "what": {"type": "respond_to_ticket", "description": "Responded to customer support ticket #4582",
                 "category": "action", "severity": "info", "status": "completed",
                 "result": "Ticket resolved with satisfaction rating 5/5", "duration": 45000},
        "where": _SUPPORT_SPACE,
        "why": {"trigger": "user_request", "reasoning": "Customer submitted inquiry about billing",
                "trigger_ref": {"type": "message", "id": "msg-9284", "name": "Billing Question"},
                "goal": "Resolve customer inquiry efficiently", "confidence": 0.94},
        "how": {"approach": "symbolic", "tools": ["knowledge-base", "billing-api"], "model": "gpt-4-turbo",
                "parameters": {"temperature": 0.3},
                "steps": ["Parse inquiry", "Search knowledge base", "Retrieve billing data", "Generate response"],
                "resources": {"tokens": 1247, "api_calls": 3, "duration": 45000, "cost": 0.024}},
        "tags": ["support", "billing", "resolved"],
    }, {}),
    (1.2, {
        "who": _JSMITH,
        "what": {"type": "approve_deployment", "description": "Approved production deployment for Marketing Automation",
                 "category": "approval", "severity": "notice", "status": "completed",
                 "result": "Deployment queued for execution"},
        "where": _MARKETING_AUTOMATION,
        "why": {"trigger": "automation", "reasoning": "Automation requested approval for production changes",
                "trigger_ref": {"type": "automation", "id": "auto-deploy-123", "name": "Deploy Pipeline"},
                "goal": "Release new marketing features"},
        "how": {"approach": "manual", "steps": ["Review changes", "Verify tests passed", "Click approve"]},
        "tags": ["deployment", "approval", "marketing"],
    }, {}),
    (2.5, {
        "who": {"type": "system", "id": "sys-monitor", "name": "System Monitor"},
        "what": {"type": "rate_limit_warning", "description": "API rate limit approaching threshold (85%)",
                 "category": "system", "severity": "warning", "status": "completed"},
        "where": {"external_system": "OpenAI API", "path": "/v1/chat/completions"},
        "why": {"trigger": "condition", "reasoning": "Usage exceeded 80% of rate limit",
                "trigger_ref": {"type": "rule", "id": "rule-rate-limit", "name": "Rate Limit Monitor"}},
        "how": {"approach": "symbolic", "steps": ["Check current usage", "Compare to threshold", "Generate alert"]},
        "tags": ["system", "rate-limit", "warning"],
    }, {"is_flagged": True}),
    (4, {
        "who": {"type": "cognate", "id": "cog-analyst", "name": "Data Analyst Cognate",
                "metadata": {"tier": 3, "autonomy_level": "autonomous"}},
        "what": {"type": "classify_data", "description": "Classified 1,247 incoming leads by quality score",
                 "category": "decision", "severity": "info", "status": "completed",
                 "result": "High: 312, Medium: 589, Low: 346", "duration": 180000},
        "where": {"space_id": "space-sales", "space_name": "Sales",
                  "project_id": "proj-leads", "project_name": "Lead Management"},
        "why": {"trigger": "schedule", "reasoning": "Scheduled daily lead classification task",
                "goal": "Prioritize sales team efforts", "confidence": 0.91},
        "how": {"approach": "hybrid", "tools": ["crm-api", "scoring-model"], "model": "gpt-4-turbo",
                "parameters": {"temperature": 0.1},
                "steps": ["Fetch new leads", "Extract features", "Run scoring model", "Update CRM"],
                "resources": {"tokens": 45000, "api_calls": 1250, "duration": 180000, "cost": 0.89}},
        "tags": ["sales", "leads", "classification", "automated"],
    }, {}),
    (6, {
        "who": _SUPPORT,
        "what": {"type": "escalate_ticket", "description": "Escalated ticket #4601 to human review",
                 "category": "escalation", "severity": "notice", "status": "completed",
                 "result": "Assigned to senior support engineer"},
        "where": _SUPPORT_SPACE,
        "why": {"trigger": "condition", "reasoning": "Customer sentiment negative, confidence below threshold",
                "trigger_ref": {"type": "sop", "id": "sop-escalation", "name": "Escalation SOP"},
                "confidence": 0.42},
        "how": {"approach": "symbolic", "tools": ["sentiment-analysis", "routing-engine"],
                "steps": ["Analyze sentiment", "Check confidence", "Apply escalation rule", "Notify team"]},
        "tags": ["support", "escalation", "human-review"],
    }, {}),
    (8, {
        "who": {"type": "integration", "id": "int-slack", "name": "Slack Integration"},
        "what": {"type": "sync_messages", "description": "Synced 89 messages from #general channel",
                 "category": "integration", "severity": "info", "status": "completed", "duration": 12000},
        "where": {"external_system": "Slack", "path": "/channels/general"},
        "why": {"trigger": "schedule", "reasoning": "Scheduled sync every 15 minutes"},
        "how": {"approach": "symbolic", "tools": ["slack-api"],
                "steps": ["Fetch new messages", "Process mentions", "Update context"],
                "resources": {"api_calls": 3, "duration": 12000}},
        "tags": ["integration", "slack", "sync"],
    }, {}),
    (10, {
        "who": {"type": "cognate", "id": "cog-writer", "name": "Content Writer Cognate",
                "metadata": {"tier": 2, "autonomy_level": "supervised"}},
        "what": {"type": "generate_content", "description": "Failed to generate blog post - context window exceeded",
                 "category": "error", "severity": "error", "status": "failed",
                 "result": "Error: Maximum context length exceeded (128k tokens)"},
        "where": {"space_id": "space-content", "space_name": "Content",
                  "project_id": "proj-blog", "project_name": "Blog Management"},
        "why": {"trigger": "user_request", "reasoning": "User requested comprehensive industry report",
                "trigger_ref": {"type": "message", "id": "msg-8821", "name": "Generate Report"}},
        "how": {"approach": "neural", "model": "gpt-4-turbo",
                "steps": ["Gather research", "Build context", "FAILED: Context overflow"],
                "resources": {"tokens": 128000, "cost": 0.42}},
        "tags": ["content", "error", "context-overflow"],
    }, {"is_flagged": True}),
    (12, {
        "who": {"type": "user", "id": "user-mjones", "name": "Mary Jones", "metadata": {"role": "Manager"}},
        "what": {"type": "update_config", "description": "Updated Cognate autonomy level from supervised to autonomous",
                 "category": "change", "severity": "notice", "status": "completed"},
        "where": {"space_id": "space-admin", "space_name": "Administration", "path": "/settings/cognates/cog-analyst"},
        "why": {"trigger": "user_request", "reasoning": "Cognate demonstrated consistent high performance"},
        "how": {"approach": "manual",
                "steps": ["Navigate to settings", "Select Cognate", "Update autonomy level", "Save changes"]},
        "tags": ["config", "cognate", "autonomy"],
    }, {}),
    (18, {
        "who": _JSMITH,
        "what": {"type": "create_narrative", "description": "Created new Narrative: Customer Onboarding Flow",
                 "category": "creation", "severity": "info", "status": "completed"},
        "where": {"space_id": "space-product", "space_name": "Product",
                  "project_id": "proj-onboarding", "project_name": "User Onboarding"},
        "why": {"trigger": "user_request", "reasoning": "Team requested automated onboarding sequence"},
        "how": {"approach": "manual", "tools": ["narrative-builder"],
                "steps": ["Define triggers", "Add steps", "Configure Cognates", "Activate"]},
        "tags": ["narrative", "onboarding", "creation"],
    }, {}),
    (24, {
        "who": {"type": "cognate", "id": "cog-comms", "name": "Communications Cognate",
                "metadata": {"tier": 2, "autonomy_level": "supervised"}},
        "what": {"type": "send_notification", "description": "Sent weekly digest email to 1,247 subscribers",
                 "category": "communication", "severity": "info", "status": "completed", "duration": 85000},
        "where": {"space_id": "space-marketing", "space_name": "Marketing",
                  "project_id": "proj-email", "project_name": "Email Campaigns"},
        "why": {"trigger": "schedule", "reasoning": "Weekly digest scheduled for Monday 9am",
                "goal": "Keep subscribers engaged"},
        "how": {"approach": "hybrid", "tools": ["email-service", "personalization-engine"], "model": "gpt-4-turbo",
                "steps": ["Generate content", "Personalize per segment", "Send via email service"],
                "resources": {"tokens": 89000, "api_calls": 1250, "duration": 85000, "cost": 1.78}},
        "tags": ["email", "marketing", "digest"],
    }, {}),
    (28, {
        "who": {"type": "user", "id": "user-alee", "name": "Alice Lee",
                "metadata": {"role": "Viewer", "ip_address": "192.168.1.45"}},
        "what": {"type": "access_report", "description": "Accessed Q4 Financial Report",
                 "category": "access", "severity": "info", "status": "completed"},
        "where": {"space_id": "space-finance", "space_name": "Finance", "project_id": "proj-reports",
                  "project_name": "Financial Reports", "path": "/reports/q4-2025"},
        "why": {"trigger": "user_request", "reasoning": "User navigated to report page"},
        "how": {"approach": "direct", "steps": ["Authenticate", "Verify permissions", "Load report"]},
        "tags": ["access", "finance", "report"],
    }, {}),
    (36, {
        "who": {"type": "automation", "id": "auto-backup", "name": "Daily Backup Automation"},
        "what": {"type": "execute_backup", "description": "Completed daily backup of all Spaces",
                 "category": "action", "severity": "info", "status": "completed", "duration": 420000},
        "where": {"external_system": "AWS S3", "path": "s3://symtex-backups/daily/"},
        "why": {"trigger": "schedule", "reasoning": "Daily backup scheduled for 3am UTC"},
        "how": {"approach": "symbolic", "tools": ["backup-service", "s3-api"],
                "steps": ["Identify changed data", "Compress", "Upload to S3", "Verify integrity"],
                "resources": {"api_calls": 47, "duration": 420000}},
        "tags": ["backup", "system", "automated"],
    }, {}),
    (42, {
        "who": _SUPPORT,
        "what": {"type": "pattern_learned", "description": "Learned new response pattern for shipping inquiries",
                 "category": "change", "severity": "info", "status": "completed"},
        "where": {"space_id": "space-support", "space_name": "Customer Support"},
        "why": {"trigger": "event", "reasoning": "Pattern compiled from 50+ similar successful responses",
                "trigger_ref": {"type": "rule", "id": "rule-pattern-learn", "name": "Pattern Learning"}},
        "how": {"approach": "hybrid", "steps": ["Identify pattern", "Validate accuracy", "Compile to S1", "Deploy"]},
        "tags": ["learning", "pattern", "support"],
    }, {}),
    (48, {
        "who": _JSMITH,
        "what": {"type": "delete_draft", "description": "Deleted draft Narrative: Abandoned Cart Recovery (v2)",
                 "category": "deletion", "severity": "notice", "status": "completed"},
        "where": _MARKETING_AUTOMATION,
        "why": {"trigger": "user_request", "reasoning": "Draft superseded by improved version"},
        "how": {"approach": "manual", "steps": ["Select draft", "Confirm deletion", "Archive to trash"]},
        "tags": ["deletion", "narrative", "cleanup"],
    }, {}),
    (52, {
        "who": {"type": "system", "id": "sys-security", "name": "Security Monitor"},
        "what": {"type": "security_alert",
                 "description": "Detected unusual login pattern - 5 failed attempts from new IP",
                 "category": "system", "severity": "critical", "status": "completed",
                 "result": "Account temporarily locked, admin notified"},
        "where": {"path": "/auth/login"},
        "why": {"trigger": "condition", "reasoning": "Failed login threshold exceeded",
                "trigger_ref": {"type": "rule", "id": "rule-security", "name": "Brute Force Detection"}},
        "how": {"approach": "symbolic",
                "steps": ["Detect failed logins", "Check IP reputation", "Lock account", "Send alert"]},
        "tags": ["security", "critical", "login"],
    }, {"is_flagged": True, "review_status": "pending"}),
    (60, {
        "who": {"type": "cognate", "id": "cog-research", "name": "Research Cognate", "metadata": {"tier": 3}},
        "what": {"type": "compile_report", "description": "Compiled competitor analysis report",
                 "category": "action", "severity": "info", "status": "completed", "duration": 300000},
        "where": {"space_id": "space-strategy", "space_name": "Strategy",
                  "project_id": "proj-competitive", "project_name": "Competitive Intelligence"},
        "why": {"trigger": "user_request", "reasoning": "Quarterly competitive review requested", "confidence": 0.88},
        "how": {"approach": "hybrid", "tools": ["web-scraper", "analysis-engine"],
                "resources": {"tokens": 67000, "cost": 1.34}},
        "tags": ["research", "competitive", "report"],
    }, {}),
    (66, {
        "who": {"type": "user", "id": "user-bwilson", "name": "Bob Wilson", "metadata": {"role": "Developer"}},
        "what": {"type": "deploy_update", "description": "Deployed hotfix for checkout flow",
                 "category": "change", "severity": "notice", "status": "completed"},
        "where": {"space_id": "space-engineering", "space_name": "Engineering",
                  "project_id": "proj-ecommerce", "project_name": "E-commerce Platform"},
        "why": {"trigger": "user_request", "reasoning": "Critical bug fix for payment processing"},
        "how": {"approach": "manual", "tools": ["ci-cd-pipeline"],
                "steps": ["Commit code", "Run tests", "Deploy to staging", "Deploy to production"]},
        "tags": ["deployment", "hotfix", "engineering"],
    }, {}),
    (72, {
        "who": {"type": "cognate", "id": "cog-hr", "name": "HR Cognate",
                "metadata": {"tier": 2, "autonomy_level": "supervised"}},
        "what": {"type": "screen_resume", "description": "Screened 47 resumes for Senior Engineer position",
                 "category": "action", "severity": "info", "status": "completed",
                 "result": "12 candidates shortlisted"},
        "where": {"space_id": "space-hr", "space_name": "Human Resources",
                  "project_id": "proj-hiring", "project_name": "Talent Acquisition"},
        "why": {"trigger": "automation", "reasoning": "New applications received threshold met", "confidence": 0.86},
        "how": {"approach": "hybrid", "tools": ["resume-parser", "skills-matcher"],
                "resources": {"tokens": 23000, "cost": 0.46}},
        "tags": ["hr", "hiring", "screening"],
    }, {}),
    (78, {
        "who": {"type": "integration", "id": "int-salesforce", "name": "Salesforce Integration"},
        "what": {"type": "sync_contacts", "description": "Synced 234 new contacts from Salesforce",
                 "category": "integration", "severity": "info", "status": "completed", "duration": 45000},
        "where": {"external_system": "Salesforce", "path": "/api/contacts"},
        "why": {"trigger": "schedule", "reasoning": "Hourly sync schedule"},
        "how": {"approach": "symbolic", "tools": ["salesforce-api"],
                "resources": {"api_calls": 12, "duration": 45000}},
        "tags": ["integration", "salesforce", "contacts"],
    }, {}),
    (84, {
        "who": {"type": "cognate", "id": "cog-finance", "name": "Finance Cognate",
                "metadata": {"tier": 3, "autonomy_level": "autonomous"}},
        "what": {"type": "generate_invoice", "description": "Generated 156 monthly invoices",
                 "category": "action", "severity": "info", "status": "completed", "duration": 120000},
        "where": {"space_id": "space-finance", "space_name": "Finance",
                  "project_id": "proj-billing", "project_name": "Billing Operations"},
        "why": {"trigger": "schedule", "reasoning": "Monthly billing cycle - 1st of month", "confidence": 0.99},
        "how": {"approach": "symbolic", "tools": ["billing-engine", "pdf-generator", "email-service"],
                "steps": ["Calculate charges", "Generate PDFs", "Send emails"],
                "resources": {"api_calls": 468, "duration": 120000}},
        "tags": ["finance", "invoicing", "automated"],
    }, {}),
]


def sample_payloads(now: Optional[datetime] = None) -> List[Tuple[SixWPayload, Dict[str, Any]]]:
    """(payload, annotation kwargs) pairs in append order."""
    now = now or utc_now()
    return [
        (SixWPayload.from_dict({**payload, "when": now - timedelta(hours=hours_ago)}), dict(annotation))
        for hours_ago, payload, annotation in _SAMPLES
    ]


def seed_ledger(ledger, now: Optional[datetime] = None) -> List[LedgerEntry]:
    """Append the sample events to `ledger` and apply their flags / review states."""
    entries = []
    for payload, annotation in sample_payloads(now):
        entry = ledger.append(payload)
        if annotation:
            ledger.annotate(entry.sequence, **annotation)
        entries.append(entry)
    return entries
