from healthwatch.main import main

main()
