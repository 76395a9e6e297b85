"""
Demonstration script for wiki_to_markdown.
"""

from wiki_fetch.wiki_to_markdown import WikiClient


def main():
    """
    Main function to run the demo.
    """
    client = WikiClient("en")

    # Fetch and convert the article
    result = client.search("Very-large-scale integration")

    if result.ok:
        print(result.data)
    else:
        print(result.to_payload())


if __name__ == "__main__":
    main()
