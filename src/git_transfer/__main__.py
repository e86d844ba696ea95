from git_transfer import main

main()
