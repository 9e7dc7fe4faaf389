from typing import Callable, Dict, List

from vecload.core.dispatcher import QueryDefinition, QueryKind
from vecload.core.embeddings import format_embedding
from vecload.core.random import Randomizer

QUERIES: List[QueryDefinition] = [
    QueryDefinition("semantic_search", "Vector similarity search over published articles", 40, QueryKind.READ),
    QueryDefinition("similar_questions", "Find previous searches similar to a logged query", 20, QueryKind.READ),
    QueryDefinition("browse_category", "Browse published articles of a category with tags", 15, QueryKind.READ),
    QueryDefinition("view_article", "Read an article with its sections and related articles", 10, QueryKind.READ),
    QueryDefinition("submit_feedback", "Rate the helpfulness of an article", 10, QueryKind.WRITE),
    QueryDefinition("admin_update", "Edit article content, status or sections", 5, QueryKind.WRITE),
]

SEARCH_PHRASES = [
    "how to reset my password", "export data to csv format",
    "api authentication setup", "billing payment methods",
    "enable two factor authentication", "add team member permissions",
    "dashboard not loading properly", "integrate with slack notifications",
    "configure webhook endpoints", "delete my account permanently",
    "upgrade subscription plan", "mobile app synchronization",
    "generate custom reports", "setup single sign on", "backup my data",
    "change notification settings", "troubleshoot connection issues",
    "customize dashboard layout", "audit log access permissions",
    "migrate data between accounts",
]

FEEDBACK_COMMENTS = [
    "Very helpful, thanks!", "Solved my problem", "Could be more detailed",
    "Outdated information",
]

SEMANTIC_SEARCH_SQL = """
    WITH search_results AS (
        SELECT a.id, a.title, a.summary, c.name AS category,
               1 - (a.embedding <=> %(embedding)s::vector) AS similarity
        FROM article a
        JOIN category c ON a.category_id = c.id
        WHERE a.status = 'published'
        ORDER BY a.embedding <=> %(embedding)s::vector
        LIMIT 10
    )
    SELECT * FROM search_results
"""

LOG_SEARCH_SQL = """
    INSERT INTO search_log (user_id, query_text, results_count, session_id, embedding)
    VALUES (%s, %s, %s, %s, %s::vector)
"""

SIMILAR_QUESTIONS_SQL = """
    SELECT s2.id, s2.query_text,
           1 - (s2.embedding <=> s1.embedding) AS similarity,
           s2.clicked_article
    FROM search_log s1, search_log s2
    WHERE s1.id = %s
        AND s2.id != s1.id
        AND s2.results_count > 0
    ORDER BY s2.embedding <=> s1.embedding
    LIMIT 5
"""

BROWSE_CATEGORY_SQL = """
    SELECT a.id, a.title, a.summary, a.view_count, a.helpful_count,
           u.username AS author,
           array_agg(t.name) AS tags
    FROM article a
    LEFT JOIN kb_user u ON a.author_id = u.id
    LEFT JOIN article_tag at ON a.id = at.article_id
    LEFT JOIN tag t ON at.tag_id = t.id
    WHERE a.category_id = %s AND a.status = 'published'
    GROUP BY a.id, a.title, a.summary, a.view_count, a.helpful_count, u.username
    ORDER BY a.helpful_count DESC, a.view_count DESC
    LIMIT 20
"""

VIEW_ARTICLE_SQL = """
    SELECT a.id, a.title, a.content, a.summary, c.name AS category,
           u.username AS author, a.published_at,
           s.title AS section_title, s.content AS section_content, s.section_order
    FROM article a
    JOIN category c ON a.category_id = c.id
    LEFT JOIN kb_user u ON a.author_id = u.id
    LEFT JOIN article_section s ON a.id = s.article_id
    WHERE a.id = %s
    ORDER BY s.section_order
"""

RELATED_ARTICLES_SQL = """
    SELECT r.related_id, a.title, a.summary, r.similarity
    FROM related_article r
    JOIN article a ON r.related_id = a.id
    WHERE r.article_id = %s AND a.status = 'published'
    ORDER BY r.similarity DESC
    LIMIT 5
"""

INCREMENT_VIEWS_SQL = "UPDATE article SET view_count = view_count + 1 WHERE id = %s"

INSERT_FEEDBACK_SQL = """
    INSERT INTO feedback (article_id, user_id, is_helpful, comment, session_id)
    VALUES (%s, %s, %s, %s, %s)
"""

HELPFUL_SQL = "UPDATE article SET helpful_count = helpful_count + 1 WHERE id = %s"
UNHELPFUL_SQL = "UPDATE article SET unhelpful_count = unhelpful_count + 1 WHERE id = %s"

UPDATE_CONTENT_SQL = """
    UPDATE article
    SET content = %s, embedding = %s::vector, updated_at = NOW()
    WHERE id = %s
"""

UPDATE_STATUS_SQL = "UPDATE article SET status = %s, updated_at = NOW() WHERE id = %s"

ADD_SECTION_SQL = """
    INSERT INTO article_section (article_id, title, content, section_order, embedding)
    SELECT %(article_id)s, %(title)s, %(content)s, COALESCE(MAX(section_order), 0) + 1, %(embedding)s::vector
    FROM article_section WHERE article_id = %(article_id)s
"""


class KnowledgeBaseQueries:
    """
    Handlers de consultas. Los ids aleatorios se acotan con los conteos
    tomados una sola vez al preparar el dispatcher.
    """

    def __init__(self, embedder, bounds: Dict[str, int], rng: Randomizer):
        self.embedder = embedder
        self.rng = rng
        self.num_articles = max(1, bounds.get("article", 1))
        self.num_users = max(1, bounds.get("kb_user", 1))
        self.num_categories = max(1, bounds.get("category", 1))
        self.num_searches = max(1, bounds.get("search_log", 1))

    def handlers(self) -> Dict[str, Callable]:
        return {
            "semantic_search": self.semantic_search,
            "similar_questions": self.similar_questions,
            "browse_category": self.browse_category,
            "view_article": self.view_article,
            "submit_feedback": self.submit_feedback,
            "admin_update": self.admin_update,
        }

    def _random_user(self, probability: float):
        if self.rng.random() > probability:
            return self.rng.int_between(1, self.num_users)
        return None

    def semantic_search(self, db) -> int:
        query = self.rng.choice(SEARCH_PHRASES)
        vector = format_embedding(self.embedder.embed(query))

        rows = db.query(SEMANTIC_SEARCH_SQL, {"embedding": vector})
        count = len(rows)

        db.exec(LOG_SEARCH_SQL, (self._random_user(0.2), query, count,
                                 self.rng.session_id(), vector))
        return count

    def similar_questions(self, db) -> int:
        search_id = self.rng.int_between(1, self.num_searches)
        return len(db.query(SIMILAR_QUESTIONS_SQL, (search_id,)))

    def browse_category(self, db) -> int:
        category_id = self.rng.int_between(1, self.num_categories)
        return len(db.query(BROWSE_CATEGORY_SQL, (category_id,)))

    def view_article(self, db) -> int:
        article_id = self.rng.int_between(1, self.num_articles)
        db.exec(INCREMENT_VIEWS_SQL, (article_id,))
        count = len(db.query(VIEW_ARTICLE_SQL, (article_id,)))
        count += len(db.query(RELATED_ARTICLES_SQL, (article_id,)))
        return count

    def submit_feedback(self, db) -> int:
        article_id = self.rng.int_between(1, self.num_articles)
        is_helpful = self.rng.random() > 0.25
        comment = self.rng.choice(FEEDBACK_COMMENTS) if self.rng.random() > 0.5 else None

        db.exec(INSERT_FEEDBACK_SQL, (article_id, self._random_user(0.3), is_helpful,
                                      comment, self.rng.session_id()))
        db.exec(HELPFUL_SQL if is_helpful else UNHELPFUL_SQL, (article_id,))
        return 1

    def admin_update(self, db) -> int:
        article_id = self.rng.int_between(1, self.num_articles)
        action = self.rng.int_between(1, 3)

        if action == 1:
            content = self.rng.paragraphs(3, 4, 12)
            vector = format_embedding(self.embedder.embed(content))
            return db.exec(UPDATE_CONTENT_SQL, (content, vector, article_id))
        elif action == 2:
            status = self.rng.choice(["draft", "published", "archived"])
            return db.exec(UPDATE_STATUS_SQL, (status, article_id))

        content = self.rng.paragraphs(1, 3, 10)
        return db.exec(ADD_SECTION_SQL, {
            "article_id": article_id,
            "title": self.rng.choice(["Update", "Additional Information", "Note", "Appendix"]),
            "content": content,
            "embedding": format_embedding(self.embedder.embed(content)),
        })
