"""
LinkedIn extractor implementations, one per task kind.

Selectors target the public and logged-in markup as observed at the time of
writing; they are best-effort and return nulls rather than failing when a
section is missing.
"""

import logging
import re
from typing import Any, Dict, List, Mapping

from src.schemas.scrape import ScrapeTask, TaskType
from src.services.scraper.core.base import BaseExtractor, scraped_at, with_trailing_slash
from src.services.scraper.core.browser import BrowserSession
from src.services.scraper.filter_service import filter_recent

logger = logging.getLogger(__name__)

MAX_JOBS = 50

PROFILE_JS = """
() => {
    const q = (s) => document.querySelector(s);
    const qAll = (s) => Array.from(document.querySelectorAll(s));
    const pick = (el) => (el ? el.innerText.trim() : null);

    const name = pick(q('h1'));
    const headline = pick(q('.text-body-medium, .text-body-small, .pv-top-card--list li'));
    const location = pick(q('.text-body-small.t-black--light, .pv-top-card--list-bullet'));
    const about = pick(q('#about, .pv-about-section, .pv-top-card--summary'));

    const experiences = qAll(
        '#experience-section li, .experience-section__list li, section#experience-section li, ' +
        '.pv-profile-section.experience-section ul li'
    ).slice(0, 20).map((li) => ({
        title: pick(li.querySelector('h3, .t-16')),
        company: pick(li.querySelector('.pv-entity__secondary-title, .pv-entity__company-summary-info a')),
        dateRange: pick(li.querySelector('.pv-entity__date-range span:last-child, .date-range')),
        location: pick(li.querySelector('.pv-entity__location span:last-child')),
        description: pick(li.querySelector('.pv-entity__description, .description')),
    }));

    const educations = qAll(
        '#education-section li, .education-section__list li, .pv-profile-section.education-section ul li'
    ).slice(0, 10).map((li) => ({
        school: pick(li.querySelector('h3, .pv-entity__school-name')),
        degree: pick(li.querySelector('.pv-entity__degree-name .pv-entity__comma-item, .degree')),
        dates: pick(li.querySelector('.pv-entity__dates time')),
    }));

    const skills = qAll('.pv-skill-category-entity__name, .pv-skill-entity__skill-name, .skill-pill')
        .slice(0, 50)
        .map((el) => pick(el))
        .filter(Boolean);

    return { name, headline, location, about, experiences, educations, skills };
}
"""

COMPANY_JS = """
() => {
    const q = (s) => document.querySelector(s);
    const pick = (el) => (el ? el.innerText.trim() : null);
    const link = q('a[href^="http"]');

    const out = {
        name: pick(q('h1')),
        tagline: pick(q('[data-test-id="about-us__tagline"]')),
        about: pick(q('[data-test-id="about-us__description"], .org-grid__content, .break-words')),
        followers: pick(q('[data-test-id="about-us__follower-count"], [data-test-id="followers"]')),
        industry: pick(q('[data-test-id="about-us__industry"]')),
        companySize: pick(q(
            '[data-test-id="about-us__company-size"], .org-about-company-module__company-size-definition-text'
        )),
        headquarters: pick(q('[data-test-id="about-us__headquarters"]')),
        founded: pick(q('[data-test-id="about-us__foundedOn"]')),
        specialties: pick(q('[data-test-id="about-us__specialties"]')),
        website: link ? link.href : null,
    };

    const empLink = q('a[href*="/people/"]');
    if (empLink && empLink.innerText) out.employeesText = empLink.innerText.trim();

    const badge = q('[data-test-id="about-us__company-employees-on-linkedin"]');
    if (badge && badge.innerText) out.employeesBadge = badge.innerText.trim();

    return out;
}
"""

# Receives [cardSelector, linkSelectors] so profile and company feeds share one script
POSTS_JS = """
([cardSelector, linkSelectors]) => {
    const pick = (el) => (el ? el.innerText.trim() : null);
    return Array.from(document.querySelectorAll(cardSelector)).map((n) => {
        const text = pick(
            n.querySelector('[data-test-feed-shared-text], .update-components-text, .break-words')
        );
        const time = n.querySelector('time');
        const timeRaw = (time && (time.getAttribute('datetime') || time.innerText)) || null;
        let urlEl = null;
        for (const sel of linkSelectors) {
            urlEl = n.querySelector(sel);
            if (urlEl) break;
        }
        return { text, timeRaw, postUrl: urlEl ? urlEl.href : null };
    });
}
"""

JOBS_JS = """
(limit) => {
    const pick = (el) => (el ? el.innerText.trim() : null);
    const cards = Array.from(
        document.querySelectorAll('[data-job-id], .jobs-search-results__list-item, .base-card')
    );
    return cards.slice(0, limit).map((c) => {
        const time = c.querySelector('time');
        const link = c.querySelector('a[href*="/jobs/"]');
        return {
            title: pick(c.querySelector('h3, .base-search-card__title, .job-card-list__title')),
            location: pick(c.querySelector('.job-card-container__metadata-item, .base-search-card__metadata')),
            listed: pick(time) || (time && time.getAttribute('datetime')) || null,
            jobUrl: link ? link.href : null,
        };
    });
}
"""


class ProfileExtractor(BaseExtractor):
    """Person profile: top card, experience, education and skills."""

    check_challenge = True

    async def extract(self, session: BrowserSession, task: ScrapeTask) -> Dict[str, Any]:
        return await session.evaluate(PROFILE_JS)


class CompanyExtractor(BaseExtractor):
    """Company page: about-us fields and employee counters."""

    settle_seconds = 1.0
    check_challenge = True

    async def extract(self, session: BrowserSession, task: ScrapeTask) -> Dict[str, Any]:
        return await session.evaluate(COMPANY_JS)


class PostsExtractor(BaseExtractor):
    """Activity feed filtered to the task's look-back window."""

    card_selector = "div.feed-shared-update-v2, div.update-components-update, div.occludable-update"
    link_selectors = ['a[href*="activity"]']

    async def extract(self, session: BrowserSession, task: ScrapeTask) -> List[Dict[str, Any]]:
        items = await session.evaluate(POSTS_JS, [self.card_selector, self.link_selectors])
        recent = filter_recent(items or [], task.days)
        logger.info(f"Posts found: {len(items or [])}, within {task.days} days: {len(recent)}")
        return recent

    def build_record(self, task: ScrapeTask, target: str, extracted: Any) -> Dict[str, Any]:
        return {"url": target, "scrapedAt": scraped_at(), "days": task.days, "items": extracted}


class ProfilePostsExtractor(PostsExtractor):
    """Recent shares of a person, from the recent-activity page."""

    def target_url(self, url: str) -> str:
        if re.search(r"detail/recent-activity", url, re.IGNORECASE):
            return url
        return with_trailing_slash(url) + "detail/recent-activity/shares/"


class CompanyPostsExtractor(PostsExtractor):
    """Recent posts of a company, from its posts tab."""

    card_selector = "div.occludable-update, div.feed-shared-update-v2"
    link_selectors = ['a[href*="posts"]', 'a[href*="activity"]']

    def target_url(self, url: str) -> str:
        return with_trailing_slash(url) + "posts/"


class CompanyJobsExtractor(BaseExtractor):
    """Open positions listed on a company's jobs tab."""

    def target_url(self, url: str) -> str:
        return with_trailing_slash(url) + "jobs/"

    async def extract(self, session: BrowserSession, task: ScrapeTask) -> List[Dict[str, Any]]:
        jobs = await session.evaluate(JOBS_JS, MAX_JOBS)
        return (jobs or [])[:MAX_JOBS]

    def build_record(self, task: ScrapeTask, target: str, extracted: Any) -> Dict[str, Any]:
        return {"url": target, "scrapedAt": scraped_at(), "jobs": extracted}


def default_extractors() -> Mapping[TaskType, BaseExtractor]:
    """Registry of the LinkedIn extractors keyed by task type."""
    return {
        TaskType.PROFILE: ProfileExtractor(),
        TaskType.PROFILE_POSTS: ProfilePostsExtractor(),
        TaskType.COMPANY: CompanyExtractor(),
        TaskType.COMPANY_POSTS: CompanyPostsExtractor(),
        TaskType.JOBS_COMPANY: CompanyJobsExtractor(),
    }
