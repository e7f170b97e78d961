from webpublish.cli import main

main()
