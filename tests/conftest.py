"""Shared fixtures: a fake HTTP client and a small clinic site."""

from __future__ import annotations

import pytest

from fakes import FakeClient, html_page

BASE_URL = "https://clinic.example/"

HOME_HEAD = (
    '<meta name="viewport" content="width=device-width, initial-scale=1">'
    '<meta name="description" content="Book a free consultation with experienced dentists in Kyiv. '
    'Modern equipment, guarantee on every implant and painless treatment for the whole family.">'
    '<link rel="canonical" href="https://clinic.example/">'
    '<script type="application/ld+json">{"@context": "https://schema.org", "@type": "MedicalClinic"}</script>'
)

HOME_BODY = """
<header><h1>Smile Clinic</h1></header>
<nav>
  <a href="/about-us">Про нас</a>
  <a href="/doctors/">Наші лікарі</a>
  <a href="/privacy-policy">Політика конфіденційності</a>
  <a href="/cases/">Результати лікування</a>
</nav>
<main>
  <p>Ліцензія МОЗ України. Понад 5000 пацієнтів за 15 років.</p>
  <p>ТОВ «Смайл Клінік», ЄДРПОУ: 12345678</p>
  <p>м. Київ, вул. Хрещатик, 1</p>
  <a href="tel:+380441234567">+38 (044) 123-45-67</a>
  <a href="mailto:info@clinic.example">info@clinic.example</a>
  <a href="https://www.google.com/maps/place/Smile+Clinic/@50.45,30.52">Ми на карті</a>
  <a href="https://doc.ua/clinic/smile">Doc.ua</a>
  <a href="https://www.facebook.com/smileclinic">Facebook</a>
  <a href="https://pubmed.ncbi.nlm.nih.gov/12345/">Дослідження</a>
  <img src="/img/team.jpg" alt="Команда клініки">
</main>
"""


@pytest.fixture()
def base_url() -> str:
    return BASE_URL


@pytest.fixture()
def home_html() -> str:
    return html_page(HOME_BODY, title="Dental implants in Kyiv, painless treatment | SmileClinic", head=HOME_HEAD)


@pytest.fixture()
def make_client():
    """Factory so each test can describe just the URLs it needs."""

    def factory(pages=None, heads=None) -> FakeClient:
        return FakeClient(pages=pages, heads=heads)

    return factory
