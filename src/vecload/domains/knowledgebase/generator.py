import logging
from typing import Dict

from vecload.core.batch import BatchConfig
from vecload.core.embeddings import format_embedding
from vecload.core.estimator import TableSizeInfo
from vecload.core.random import Randomizer, slugify

logger = logging.getLogger(__name__)

# Storage assumptions (article, article_section and search_log get the vector cost added)
TABLE_SIZES = [
    TableSizeInfo("category", 200, 20, 1.1),
    TableSizeInfo("tag", 100, 50, 1.1),
    TableSizeInfo("kb_user", 200, 200, 1.2),
    TableSizeInfo("article", 3000, 500, 1.5),
    TableSizeInfo("article_section", 2000, 2000, 1.5),
    TableSizeInfo("article_tag", 20, 1500, 1.1),
    TableSizeInfo("search_log", 2000, 1000, 1.5),
    TableSizeInfo("feedback", 150, 500, 1.2),
    TableSizeInfo("related_article", 30, 2000, 1.1),
]

VECTOR_TABLES = ["article", "article_section", "search_log"]

CATEGORY_NAMES = [
    "Getting Started", "Account Management", "Billing & Payments",
    "Technical Support", "Product Features", "Integrations",
    "Security & Privacy", "API Documentation", "Troubleshooting",
    "Best Practices", "Release Notes", "FAQs", "Tutorials",
    "Mobile Apps", "Desktop Apps", "Web Application",
    "Data Management", "Reports & Analytics", "User Guides",
    "Developer Resources",
]

TAG_NAMES = [
    "how-to", "setup", "configuration", "error", "bug",
    "feature-request", "billing", "account", "security", "api",
    "integration", "performance", "mobile", "desktop", "web",
    "database", "authentication", "authorization", "export", "import",
    "backup", "restore", "upgrade", "migration", "deployment",
    "monitoring", "alerts", "notifications", "email", "sms",
    "webhook", "oauth", "sso", "two-factor", "password",
    "user-management", "team", "organization", "permissions", "roles",
    "dashboard", "reports", "analytics", "charts", "metrics",
    "automation", "workflow", "templates", "customization", "themes",
]

TITLE_PREFIXES = [
    "How to", "Guide to", "Understanding", "Troubleshooting",
    "Getting Started with", "Best Practices for", "FAQ:",
    "Tips for", "Introduction to", "Advanced",
]

TOPICS = [
    "User Authentication", "Data Export", "API Integration",
    "Account Settings", "Billing Management", "Security Features",
    "Performance Optimization", "Mobile App Setup", "Team Management",
    "Report Generation", "Dashboard Customization", "Webhook Configuration",
    "SSO Setup", "Two-Factor Authentication", "Password Policies",
    "Data Backup", "System Migration", "Notification Settings",
    "Role Permissions", "Audit Logging",
]

SECTION_TITLES = [
    "Overview", "Prerequisites", "Step-by-Step Guide",
    "Common Issues", "Troubleshooting", "FAQ",
    "Related Topics", "Next Steps", "Additional Resources",
]

LOGGED_SEARCHES = [
    "how to reset password", "export data to csv", "api rate limits",
    "billing questions", "two factor authentication setup",
    "team member permissions", "dashboard not loading",
    "integration with slack", "webhook configuration", "account deletion",
    "upgrade subscription", "mobile app sync issues", "report generation",
    "sso configuration", "data backup options", "notification settings",
    "api authentication", "custom domain setup", "performance issues",
    "audit log access",
]

FEEDBACK_COMMENTS = [
    "Very helpful, thanks!", "This solved my problem", "Could use more detail",
    "Outdated information", "Clear and concise", "Screenshots would help",
    "Exactly what I needed", "Confusing instructions",
]


class KnowledgeBaseGenerator:
    """
    Genera las tablas de la base de conocimiento en orden de claves foraneas.
    Los ids SERIAL se asumen consecutivos desde 1 (esquema recien creado).
    """

    def __init__(self, workload, db, batch: BatchConfig, rng: Randomizer):
        self.workload = workload
        self.db = db
        self.batch = batch
        self.rng = rng
        self.embedder = workload.embedder

    def _load(self, table: str, columns, rows, total: int = None) -> int:
        logger.info("Generating %s", table)
        inserter = self.workload.inserter(self.db, table, columns, self.batch, total_rows=total)
        return inserter.insert_all(rows)

    def _vector(self, text: str) -> str:
        return format_embedding(self.embedder.embed(text))

    def run(self, counts: Dict[str, int]) -> Dict[str, int]:
        n_categories = counts["category"]
        n_tags = counts["tag"]
        n_users = counts["kb_user"]
        n_articles = counts["article"]

        return {
            "category": self.categories(n_categories),
            "tag": self.tags(n_tags),
            "kb_user": self.users(n_users),
            "article": self.articles(n_articles, n_categories, n_users),
            "article_section": self.sections(n_articles),
            "article_tag": self.article_tags(n_articles, n_tags),
            "search_log": self.search_logs(counts["search_log"], n_users, n_articles),
            "feedback": self.feedback(counts["feedback"], n_articles, n_users),
            "related_article": self.related_articles(n_articles),
        }

    def categories(self, count: int) -> int:
        def rows():
            for i in range(1, count + 1):
                name = CATEGORY_NAMES[(i - 1) % len(CATEGORY_NAMES)]
                if i > len(CATEGORY_NAMES):
                    name = f"{name} {i // len(CATEGORY_NAMES)}"
                parent_id = None
                if i > 5 and self.rng.chance(0.3):
                    parent_id = self.rng.int_between(1, min(i - 1, 5))
                yield (name, slugify(name), self.rng.sentence(10), parent_id)

        return self._load("category", ["name", "slug", "description", "parent_id"], rows(), count)

    def tags(self, count: int) -> int:
        def rows():
            for i in range(1, count + 1):
                name = TAG_NAMES[(i - 1) % len(TAG_NAMES)]
                if i > len(TAG_NAMES):
                    name = f"{name}-{i // len(TAG_NAMES)}"
                yield (name, slugify(name))

        return self._load("tag", ["name", "slug"], rows(), count)

    def users(self, count: int) -> int:
        roles = ["customer", "agent", "admin"]
        role_weights = [70, 25, 5]

        def rows():
            for i in range(1, count + 1):
                first = self.rng.first_name()
                last = self.rng.last_name()
                email = f"{slugify(first)}.{slugify(last)}{i}@example.com"
                username = f"{slugify(first)[:3]}{slugify(last)[:3]}{i}"
                yield (email, username, self.rng.weighted_choice(roles, role_weights),
                       first, last, self.rng.random() > 0.05)

        return self._load(
            "kb_user", ["email", "username", "role", "first_name", "last_name", "is_active"],
            rows(), count)

    def articles(self, count: int, n_categories: int, n_users: int) -> int:
        statuses = ["draft", "published", "archived"]
        status_weights = [10, 85, 5]
        distinct_titles = len(TITLE_PREFIXES) * len(TOPICS)

        def rows():
            for i in range(1, count + 1):
                title = f"{self.rng.choice(TITLE_PREFIXES)} {self.rng.choice(TOPICS)}"
                if i > distinct_titles:
                    title = f"{title} ({i})"
                summary = self.rng.sentence(20)
                content = self.rng.paragraphs(3, 5, 15)
                status = self.rng.weighted_choice(statuses, status_weights)
                yield (
                    title, f"{slugify(title)}-{i}", summary, content,
                    self.rng.int_between(1, n_categories),
                    self.rng.int_between(1, n_users),
                    status,
                    self.rng.int_between(0, 10000),
                    self.rng.int_between(0, 500),
                    self.rng.int_between(0, 50),
                    self._vector(f"{title} {summary} {content}"),
                )

        return self._load(
            "article",
            ["title", "slug", "summary", "content", "category_id", "author_id", "status",
             "view_count", "helpful_count", "unhelpful_count", "embedding"],
            rows(), count)

    def sections(self, n_articles: int) -> int:
        def rows():
            for article_id in range(1, n_articles + 1):
                for order in range(1, self.rng.int_between(2, 6) + 1):
                    title = SECTION_TITLES[(order - 1) % len(SECTION_TITLES)]
                    content = self.rng.paragraphs(2, 4, 12)
                    yield (article_id, title, content, order, self._vector(f"{title} {content}"))

        return self._load(
            "article_section", ["article_id", "title", "content", "section_order", "embedding"], rows())

    def article_tags(self, n_articles: int, n_tags: int) -> int:
        def rows():
            for article_id in range(1, n_articles + 1):
                used = set()
                for _ in range(self.rng.int_between(1, 5)):
                    tag_id = self.rng.int_between(1, n_tags)
                    if tag_id in used:
                        continue
                    used.add(tag_id)
                    yield (article_id, tag_id)

        return self._load("article_tag", ["article_id", "tag_id"], rows())

    def search_logs(self, count: int, n_users: int, n_articles: int) -> int:
        def rows():
            for _ in range(count):
                query = self.rng.choice(LOGGED_SEARCHES)
                if self.rng.chance(0.3):
                    query = f"{query} {self.rng.word()}"

                user_id = self.rng.int_between(1, n_users) if self.rng.random() > 0.2 else None
                results = self.rng.int_between(0, 20)
                clicked = None
                if results > 0 and self.rng.random() > 0.3:
                    clicked = self.rng.int_between(1, n_articles)
                yield (user_id, query, results, clicked, self.rng.session_id(), self._vector(query))

        return self._load(
            "search_log",
            ["user_id", "query_text", "results_count", "clicked_article", "session_id", "embedding"],
            rows(), count)

    def feedback(self, count: int, n_articles: int, n_users: int) -> int:
        def rows():
            for _ in range(count):
                user_id = self.rng.int_between(1, n_users) if self.rng.random() > 0.3 else None
                comment = self.rng.choice(FEEDBACK_COMMENTS) if self.rng.random() > 0.5 else None
                yield (self.rng.int_between(1, n_articles), user_id,
                       self.rng.random() > 0.25, comment, self.rng.session_id())

        return self._load(
            "feedback", ["article_id", "user_id", "is_helpful", "comment", "session_id"], rows(), count)

    def related_articles(self, n_articles: int) -> int:
        def rows():
            for article_id in range(1, n_articles + 1):
                used = set()
                for _ in range(self.rng.int_between(2, 5)):
                    related_id = self.rng.int_between(1, n_articles)
                    if related_id == article_id or related_id in used:
                        continue
                    used.add(related_id)
                    similarity = round(0.5 + self.rng.uniform(0, 0.49), 4)
                    yield (article_id, related_id, similarity)

        return self._load("related_article", ["article_id", "related_id", "similarity"], rows())
