"""Prompt construction for the recommendation variants.

Prompts steer the model toward the one-line format the extractor parses
(see services.parser). The worked examples are chosen by plot keyword and by
requested language and exist only to steer format and tone.
"""

from core.languages import LANGUAGE_NAMES
from core.matching import MAX_RECOMMENDATIONS
from recommend.models import PreferenceSpec, PreviousRecommendation

LINE_FORMAT = (
    "* [Original Title] ([English Title if different]) ([Year]) - "
    "[Plot + Similarity Explanation] | Genres: [Genre1, Genre2, ...]"
)

PLOT_EXAMPLES: dict[str, list[str]] = {
    "revenge": [
        "* 올드보이 (Oldboy) (2003) - A man imprisoned for 15 years seeks revenge against his "
        "mysterious captor, uncovering shocking truths. EXACT MATCH for revenge theme - the "
        "entire plot revolves around revenge and its consequences. | Genres: Mystery, Thriller, Drama",
        "* Lady Vengeance (2005) - A woman wrongfully imprisoned plots an elaborate revenge "
        "against the man who framed her, methodically gathering allies. CLOSE MATCH - focuses "
        "on meticulous revenge planning and execution. | Genres: Crime, Drama, Thriller",
    ],
    "time travel": [
        "* 時をかける少女 (The Girl Who Leapt Through Time) (2006) - A high school girl discovers "
        "she can jump through time, but learns that changing the past has consequences. EXACT "
        "MATCH - entire plot revolves around time travel and its effects. | Genres: Animation, "
        "Science Fiction, Romance",
        "* Primer (2004) - Two engineers accidentally build a device that lets them loop back "
        "through time, and their friendship frays. CLOSE MATCH - explores time travel "
        "mechanics and consequences. | Genres: Science Fiction, Thriller, Drama",
    ],
    "coming of age": [
        "* Les Quatre Cents Coups (The 400 Blows) (1959) - A troubled young boy in Paris "
        "struggles with family issues and school, seeking his own path in life. EXACT MATCH - "
        "entire film focuses on a young boy's journey to adulthood. | Genres: Drama",
        "* 3 Idiots (2009) - Three engineering students challenge the academic system while "
        "discovering their true passions and friendship. CLOSE MATCH - follows young adults "
        "finding their place in the world. | Genres: Comedy, Drama",
    ],
}

# Alternate spellings that select the same plot examples
PLOT_KEYWORDS: dict[str, str] = {
    "revenge": "revenge",
    "vengeance": "revenge",
    "time travel": "time travel",
    "time-travel": "time travel",
    "timetravel": "time travel",
    "coming of age": "coming of age",
    "coming-of-age": "coming of age",
    "growing up": "coming of age",
}

LANGUAGE_EXAMPLES: dict[str, list[str]] = {
    "en": [
        "* The Godfather (1972) - A crime family's patriarch transfers control to his reluctant "
        "son, exploring themes of power and family loyalty. Similar to 'Goodfellas' in its "
        "portrayal of organized crime. | Genres: Crime, Drama",
        "* Inception (2010) - A skilled thief uses dream-sharing technology to plant ideas in "
        "people's minds. Similar to 'The Matrix' in its reality-bending concept. | Genres: "
        "Science Fiction, Action, Thriller",
    ],
    "ko": [
        "* 기생충 (Parasite) (2019) - A poor family infiltrates a wealthy household, leading to an "
        "unpredictable series of events that mirror class inequality. Similar to 'Shoplifters' "
        "in examining social disparity. | Genres: Drama, Thriller",
        "* 아가씨 (The Handmaiden) (2016) - A complex tale of deception and romance in colonial "
        "Korea, with twists reminiscent of 'Gone Girl'. | Genres: Drama, Romance, Thriller",
    ],
    "ja": [
        "* 千と千尋の神隠し (Spirited Away) (2001) - A young girl must work in a supernatural "
        "bathhouse to save her parents, exploring identity and courage like 'Alice in "
        "Wonderland'. | Genres: Animation, Adventure, Fantasy",
        "* 七人の侍 (Seven Samurai) (1954) - Masterful tale of samurai defending a village, which "
        "inspired 'The Magnificent Seven'. | Genres: Action, Drama",
    ],
    "hi": [
        "* दंगल (Dangal) (2016) - Based on a true story of a father training his daughters to "
        "become wrestlers, challenging gender norms like 'Million Dollar Baby'. | Genres: "
        "Drama, Action",
        "* लगान (Lagaan) (2001) - A village stakes its future on a cricket match against British "
        "rulers, pitting sport against authority. | Genres: Drama",
    ],
    "fr": [
        "* Amélie (2001) - A whimsical woman secretly improves others' lives, sharing themes of "
        "human connection with 'Cinema Paradiso'. | Genres: Comedy, Romance",
        "* La Haine (1995) - Raw portrayal of youth in the Paris suburbs, similar to 'Do the "
        "Right Thing' in examining social tensions. | Genres: Drama, Crime",
    ],
    "de": [
        "* Das Leben der Anderen (The Lives of Others) (2006) - A Stasi agent becomes invested "
        "in the lives of those he surveils, similar to 'The Conversation'. | Genres: Drama, "
        "Thriller",
        "* Lola rennt (Run Lola Run) (1998) - A woman has 20 minutes to save her boyfriend, "
        "with a looping structure similar to 'Groundhog Day'. | Genres: Thriller, Action",
    ],
    "es": [
        "* El laberinto del fauno (Pan's Labyrinth) (2006) - A dark fantasy paralleling the "
        "reality of war, blending fantasy and harsh reality. | Genres: Fantasy, Drama, War",
        "* Todo sobre mi madre (All About My Mother) (1999) - A mother's journey after losing "
        "her son, exploring themes like 'Terms of Endearment'. | Genres: Drama",
    ],
    "ur": [
        "* خوبصورت (Khoobsurat) (2014) - A free spirit changes a royal household's rigid ways, "
        "similar to 'The Sound of Music'. | Genres: Comedy, Romance",
        "* بول (Bol) (2011) - A powerful examination of gender and society, sharing themes "
        "with 'Water'. | Genres: Drama",
    ],
}

SERIES_NOTE = (
    "   - For series, give the run as ([Start Year]-[End Year]) or ([Start Year]-present)"
)


def select_examples(spec: PreferenceSpec) -> list[str]:
    """Plot examples matching a keyword in the plot text, then per-language examples."""
    examples: list[str] = []
    plot = spec.plot.lower()
    if plot:
        for keyword, theme in PLOT_KEYWORDS.items():
            if keyword in plot:
                examples.extend(PLOT_EXAMPLES[theme])
                break
    for language in spec.languages:
        examples.extend(LANGUAGE_EXAMPLES.get(language, []))
    if not examples:
        examples.extend(LANGUAGE_EXAMPLES["en"])
    return examples


def _language_label(code: str) -> str:
    name = LANGUAGE_NAMES.get(code)
    return f"{name} ({code})" if name else code


def _preference_lines(spec: PreferenceSpec) -> list[str]:
    lines: list[str] = []
    if spec.plot:
        lines += [
            f'- PLOT ELEMENTS (HIGHEST PRIORITY): "{spec.plot}"',
            "   - MUST find titles where this plot element is central to the story",
            "   - Prioritize EXACT matches where the plot element is the main focus",
            "   - If no exact matches, find CLOSE matches where it is significant",
            "   - State whether each title is an EXACT MATCH or CLOSE MATCH",
        ]
    if spec.languages:
        lines += [
            f"- LANGUAGES: {', '.join(_language_label(code) for code in spec.languages)}",
            "   - Titles MUST be originally made in these languages",
            "   - Include both the original title and the English translation",
        ]
    if spec.genres:
        lines.append(f"- GENRES: {', '.join(spec.genres)}")
    if spec.media_types:
        lines.append(f"- CONTENT TYPE: {', '.join(spec.media_types)}")
    if spec.similar_titles:
        lines += [
            f"- SIMILAR TO: {', '.join(spec.similar_titles)}",
            "   - Consider plot structure, themes, tone and style",
        ]
    if spec.preferred_year:
        lines += [
            f"- PREFERRED YEAR: {spec.preferred_year}",
            "   - Consider titles within 5 years if exact matches aren't found",
        ]
    if spec.cast:
        lines.append(f"- NOTABLE CAST/CREW: {', '.join(spec.cast)}")
    if spec.min_rating:
        lines.append(f"- MINIMUM RATING: {spec.min_rating}")
    if spec.exclude_titles:
        lines.append(f"- DO NOT RECOMMEND: {', '.join(spec.exclude_titles)}")
    lines.append(f"- MATURE CONTENT: {'Allowed' if spec.allow_adult else 'Excluded'}")
    return lines


def build_recommendation_prompt(spec: PreferenceSpec) -> str:
    """Render preferences into the curator prompt."""
    count = MAX_RECOMMENDATIONS
    preferences = "\n".join(_preference_lines(spec))
    examples = "\n".join(select_examples(spec))

    return f"""You are an expert film curator with deep knowledge of global cinema. Provide EXACTLY {count} recommendations that match the user's preferences, with special emphasis on plot and thematic elements.

**User Preferences (In Priority Order):**
{preferences}

**STRICT FORMAT RULES:**
1. Each recommendation MUST be a single line in this EXACT format:
   {LINE_FORMAT}
{SERIES_NOTE}
2. Description: first sentence summarizes the plot, second explains why it matches.
   For plot preferences, explicitly say EXACT MATCH or CLOSE MATCH.
3. Start each line with "* ", use the original title in its native script, and put the
   English title in parentheses when it differs.

**Examples of Correct Formatting:**
{examples}

**Critical Requirements:**
1. MUST provide EXACTLY {count} recommendations
2. ALL recommendations MUST be in the requested languages
3. ALL recommendations MUST be real, existing titles listed on TMDB
4. MUST prioritize plot/theme matching above all else
5. MUST follow the exact format shown in the examples
6. MUST prioritize EXACT matches over CLOSE matches when both are available

Begin your recommendations now:"""


def format_previous(previous: list[PreviousRecommendation]) -> str:
    """Numbered "title (year) - overview" lines for the results already shown."""
    lines = []
    for index, item in enumerate(previous, start=1):
        year = item.year or "N/A"
        lines.append(f"{index}. {item.title} ({year}) - {item.overview}".rstrip(" -"))
    return "\n".join(lines)


def _original_preferences(spec: PreferenceSpec) -> str:
    lines = [
        f"   - Languages: {', '.join(spec.languages) or 'Any'}",
        f"   - Genres: {', '.join(spec.genres) or 'Any'}",
    ]
    if spec.plot:
        lines.append(f"   - Plot elements: {spec.plot}")
    if spec.preferred_year:
        lines.append(f"   - Preferred year: {spec.preferred_year}")
    return "\n".join(lines)


def build_different_prompt(previous: list[PreviousRecommendation], spec: PreferenceSpec) -> str:
    """Ask for fresh titles unlike the ones already shown."""
    count = MAX_RECOMMENDATIONS
    return f"""You are an expert film curator. I want recommendations that are different from these titles:

{format_previous(previous)}

Please recommend {count} DIFFERENT titles that:
1. Offer a fresh perspective or unique take on the genres
2. Maintain similar quality but explore different themes or styles
3. Could appeal to someone who enjoys the above titles but wants something new
4. Are NOT the titles listed above or close variations of them
5. Still match the original preferences:
{_original_preferences(spec)}

Format each recommendation exactly as:
{LINE_FORMAT}
{SERIES_NOTE}"""


def build_similar_prompt(previous: list[PreviousRecommendation], spec: PreferenceSpec) -> str:
    """Ask for titles sharing the themes and tone of the ones already shown."""
    count = MAX_RECOMMENDATIONS
    return f"""You are an expert film curator. I want recommendations similar to these titles:

{format_previous(previous)}

Please recommend {count} DIFFERENT titles that:
1. Share similar themes, atmosphere, or storytelling style with the above titles
2. Are from the same genres or blend of genres
3. Have similar critical reception
4. Are NOT the titles listed above
5. Match the original preferences:
{_original_preferences(spec)}

Format each recommendation exactly as:
{LINE_FORMAT}
{SERIES_NOTE}"""
